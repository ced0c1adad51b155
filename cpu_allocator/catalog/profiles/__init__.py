import logging
from importlib import resources
from typing import Dict

from cpu_allocator.catalog import load_catalog_from_disk
from cpu_allocator.interface import Catalog

logger = logging.getLogger(__name__)
common_profiles: Dict[str, Catalog] = {}


for profile in sorted(resources.files(__name__).iterdir(), key=lambda p: p.name):
    if not profile.name.endswith(".json"):
        continue
    with resources.as_file(profile) as profile_path:
        logger.info("Loading profile=%s from %s", profile_path.stem, profile_path)
        common_profiles[profile_path.stem] = load_catalog_from_disk([profile_path])
