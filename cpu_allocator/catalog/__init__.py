# pylint: disable=cyclic-import
# in CatalogRegistry.catalog it imports from catalog.profiles dynamically
import json
import logging
import os
from functools import reduce
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from cpu_allocator.interface import Catalog
from cpu_allocator.interface import RegionPricing

logger = logging.getLogger(__name__)


def load_catalog(catalog: Dict[str, Any]) -> Catalog:
    """Validates a raw catalog document

    The document maps region -> size label -> hourly cost, for example
    {"us-east": {"large": 0.12, "xlarge": 0.23}}. Unknown size labels or
    negative costs raise a pydantic ValidationError.
    """
    if not isinstance(catalog, dict):
        raise ValueError(
            f"Catalog must map region -> size -> hourly cost, got {type(catalog)}"
        )
    return Catalog(
        regions={region: {"instances": sizes} for region, sizes in catalog.items()}
    )


def merge_catalogs(existing: Catalog, override: Catalog) -> Catalog:
    """Merge two catalogs, later costs win

    New regions and sizes are added. A (region, size) pair present in both
    takes the cost from the override.
    """
    merged: Dict[str, RegionPricing] = {
        region: pricing.model_copy(deep=True)
        for region, pricing in existing.regions.items()
    }
    for region, override_pricing in override.regions.items():
        if region not in merged:
            merged[region] = override_pricing.model_copy(deep=True)
            continue
        instances = dict(merged[region].instances)
        for size, hourly_cost in override_pricing.instances.items():
            if size in instances and instances[size] != hourly_cost:
                logger.warning(
                    "Overriding %s %s hourly cost %s -> %s",
                    region,
                    size,
                    instances[size],
                    hourly_cost,
                )
            instances[size] = hourly_cost
        merged[region] = RegionPricing(instances=instances)
    return Catalog(regions=merged)


def _split_paths(paths: str) -> List[Path]:
    return [Path(p) for p in paths.split(os.pathsep) if p]


def load_catalog_from_disk(
    catalog_paths: Union[List[Path], Optional[str]] = None,
) -> Catalog:
    """Loads and merges catalog documents in order

    When no paths are given the CATALOG_PATH environment variable is used,
    which may hold several files separated by os.pathsep.
    """
    if catalog_paths is None:
        catalog_paths = os.environ.get("CATALOG_PATH")
    if isinstance(catalog_paths, str):
        catalog_paths = _split_paths(catalog_paths)
    if not catalog_paths:
        return Catalog(regions={})

    loaded = [Catalog(regions={})]
    for catalog_path in catalog_paths:
        logger.debug("Loading catalog from: %s", catalog_path)
        with open(catalog_path, encoding="utf-8") as fd:
            loaded.append(load_catalog(json.load(fd)))

    return reduce(merge_catalogs, loaded)


class CatalogRegistry:
    def __init__(self):
        self._catalog: Optional[Catalog] = None

    def load(self, new_catalog: Catalog) -> None:
        self._catalog = new_catalog

    @property
    def catalog(self) -> Catalog:
        if self._catalog is None:
            from cpu_allocator.catalog.profiles import common_profiles

            profile = os.environ.get("CATALOG_PROFILE", "sample")
            if profile not in common_profiles:
                raise ValueError(
                    f"CATALOG_PROFILE={profile} does not exist. "
                    f"Try {sorted(common_profiles)}"
                )
            self._catalog = common_profiles[profile]
        return self._catalog


catalogs: CatalogRegistry = CatalogRegistry()
