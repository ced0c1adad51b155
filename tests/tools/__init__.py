# cloudResource.properties style request files, as users write them
mock_min_cpus_request = """\
# Request servers for a day
hours=24
minCPUs=135
"""

mock_combined_request = """\
hours = 1
minCPUs = 135
maxPrice = 10.14
"""

mock_missing_requirements = """\
hours=5
"""

mock_requests = {
    "min_cpus": mock_min_cpus_request,
    "combined": mock_combined_request,
    "missing": mock_missing_requirements,
}
