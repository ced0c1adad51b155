"""Turns an allocation plan into the per-region cost report.

Each record carries the region, its total cost for the requested hours as a
dollar string and the servers allocated there, for example::

    [
        {"region": "asia", "total_cost": "$8.57",
         "servers": [{"8xlarge": 7}, {"xlarge": 1}, {"large": 1}]},
        ...
    ]

Records are ordered by total cost, cheapest region first.
"""

import json
import logging
from decimal import Decimal
from decimal import ROUND_HALF_UP
from pathlib import Path
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

from cpu_allocator.interface import AllocationPlan
from cpu_allocator.interface import RegionAllocation
from cpu_allocator.interface import to_decimal
from cpu_allocator.interface import wide_context

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def round_cost(cost: Union[Decimal, float]) -> Decimal:
    """Rounds half up to cents, independent of the float rounding mode"""
    if not isinstance(cost, Decimal):
        cost = to_decimal(cost)
    with wide_context(cost):
        return cost.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_cost(cost: Union[Decimal, float]) -> str:
    return f"${round_cost(cost):.2f}"


def summarize(plan: AllocationPlan) -> List[RegionAllocation]:
    costed = []
    for region, entries in plan.regions.items():
        region_cost = round_cost(plan.region_cost(region))
        costed.append(
            (
                region_cost,
                RegionAllocation(
                    region=region,
                    total_cost=format_cost(region_cost),
                    servers=[{e.offer.size.value: e.count} for e in entries if e.count],
                ),
            )
        )
    # stable, so regions with the same cost keep allocation order
    costed.sort(key=lambda c: c[0])
    return [allocation for _, allocation in costed]


def dump_report(
    report: Sequence[RegionAllocation], indent: Optional[int] = None
) -> str:
    return json.dumps([r.model_dump() for r in report], indent=indent)


def write_report(report: Sequence[RegionAllocation], path: Path) -> None:
    logger.debug("Writing allocation report to: %s", path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(dump_report(report, indent=2))
        f.write("\n")
