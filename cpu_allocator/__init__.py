"""Allocate cloud servers across regions for a CPU floor and/or budget"""
