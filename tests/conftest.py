import json

import pytest

from cpu_allocator.allocator import CpuAllocator
from cpu_allocator.catalog import catalogs
from cpu_allocator.catalog import load_catalog
from cpu_allocator.catalog.profiles import common_profiles

# Same prices as the bundled "sample" profile, kept inline so the expected
# allocations in the tests can be read next to the data they come from.
#
# Cost per CPU, cheapest first:
#   asia 8xlarge .07375, us-west 8xlarge .08125, asia 4xlarge .08375,
#   us-east 8xlarge .0875, us-east 10xlarge .088125, us-west 10xlarge .0928,
#   us-east 4xlarge .09675, asia xlarge .1, us-west 2xlarge .10325,
#   asia large .11, us-west 4xlarge .11125, us-east 2xlarge .1125,
#   us-east xlarge .115, us-east large .12, us-west large .14
SAMPLE_CATALOG = {
    "us-east": {
        "large": 0.12,
        "xlarge": 0.23,
        "2xlarge": 0.45,
        "4xlarge": 0.774,
        "8xlarge": 1.4,
        "10xlarge": 2.82,
    },
    "us-west": {
        "large": 0.14,
        "2xlarge": 0.413,
        "4xlarge": 0.89,
        "8xlarge": 1.3,
        "10xlarge": 2.97,
    },
    "asia": {
        "large": 0.11,
        "xlarge": 0.2,
        "4xlarge": 0.67,
        "8xlarge": 1.18,
    },
}


@pytest.fixture(scope="session", autouse=True)
def configure_default_catalog():
    """
    Pin the process wide catalog to the bundled sample profile so tests do
    not depend on CATALOG_PROFILE or CATALOG_PATH in the environment.
    """
    catalogs.load(common_profiles["sample"])
    yield catalogs


@pytest.fixture
def sample_document():
    return json.loads(json.dumps(SAMPLE_CATALOG))


@pytest.fixture
def sample_catalog(sample_document):
    return load_catalog(sample_document)


@pytest.fixture
def sample_allocator(sample_catalog):
    return CpuAllocator(sample_catalog)
