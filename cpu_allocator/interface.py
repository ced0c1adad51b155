from __future__ import annotations

from decimal import Decimal
from decimal import getcontext
from decimal import localcontext
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import computed_field
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator
from pydantic import NonNegativeFloat

from cpu_allocator.enum_utils import enum_docstrings
from cpu_allocator.enum_utils import StrEnum


class ExcludeUnsetModel(BaseModel):
    def model_dump(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump(*args, **kwargs)

    def model_dump_json(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump_json(*args, **kwargs)


class EmptyCatalogError(ValueError):
    """Raised when a CPU floor is requested but there is nothing to buy"""


def to_decimal(value: float) -> Decimal:
    """Exact decimal for a catalog or request amount

    Going through str() keeps 0.1 as Decimal("0.1") instead of the binary
    expansion, so floors and comparisons on money are not at the mercy of
    float rounding.
    """
    return Decimal(str(value))


def wide_context(*amounts: Union[Decimal, int]):
    """localcontext() with enough precision for exact money arithmetic

    Sums, products and floor divisions over the given amounts stay exact, so
    a huge budget against a tiny hourly cost is neither rounded nor rejected
    with DivisionImpossible.
    """
    needed = 0
    for amount in amounts:
        _, digits, exponent = Decimal(amount).as_tuple()
        needed += len(digits) + abs(int(exponent))
    return localcontext(prec=max(getcontext().prec, 2 * needed + 2))


###############################################################################
#              Models (structs) for how we describe the catalog               #
###############################################################################


@enum_docstrings
class ServerSize(StrEnum):
    """Capacity tier of a cloud server, valued by its catalog label"""

    large = "large"
    """1 CPU"""

    xlarge = "xlarge"
    """2 CPUs"""

    xlarge2 = "2xlarge"
    """4 CPUs"""

    xlarge4 = "4xlarge"
    """8 CPUs"""

    xlarge8 = "8xlarge"
    """16 CPUs"""

    xlarge10 = "10xlarge"
    """32 CPUs"""

    @property
    def cpu(self) -> int:
        return _SIZE_CPUS[self]


_SIZE_CPUS: Dict[ServerSize, int] = {
    ServerSize.large: 1,
    ServerSize.xlarge: 2,
    ServerSize.xlarge2: 4,
    ServerSize.xlarge4: 8,
    ServerSize.xlarge8: 16,
    ServerSize.xlarge10: 32,
}


class Offer(ExcludeUnsetModel):
    """One purchasable unit: a server size at an hourly cost in a region

    offer_id is the position of the offer in catalog order and is the
    stable identity used by allocation runs.
    """

    offer_id: int
    region: str
    size: ServerSize
    hourly_cost: NonNegativeFloat
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    @property
    def cpu(self) -> int:
        return self.size.cpu

    @property
    def cost_per_cpu(self) -> Decimal:
        return to_decimal(self.hourly_cost) / self.size.cpu

    def cost(self, count: int, hours: int) -> Decimal:
        hourly_cost = to_decimal(self.hourly_cost)
        with wide_context(count, hourly_cost, hours):
            return count * hourly_cost * hours


class RegionPricing(ExcludeUnsetModel):
    """Hourly cost per server size offered in one region"""

    model_config = ConfigDict(allow_inf_nan=False)
    instances: Dict[ServerSize, NonNegativeFloat] = {}


class Catalog(ExcludeUnsetModel):
    """Represents every server size purchasable in every region

    In the catalog document this maps to:
        us-east -> {large: 0.12, xlarge: 0.23, ...}
        us-west -> {large: 0.14, ...}
        ...
    """

    regions: Dict[str, RegionPricing] = {}

    def offers(self) -> List[Offer]:
        """Flattens the catalog into offers, in region then size order"""
        result: List[Offer] = []
        for region, pricing in self.regions.items():
            for size, hourly_cost in pricing.instances.items():
                result.append(
                    Offer(
                        offer_id=len(result),
                        region=region,
                        size=size,
                        hourly_cost=hourly_cost,
                    )
                )
        return result


###############################################################################
#               Models (structs) for how we allocate servers                  #
###############################################################################


@enum_docstrings
class AllocationStrategy(StrEnum):
    """Which allocation procedure a request is served with"""

    min_cpus = "min_cpus"
    """Cheapest set of servers delivering at least the requested CPUs"""

    max_price = "max_price"
    """Most CPUs purchasable without exceeding the budget"""

    combined = "combined"
    """Check the CPU floor is affordable, then spend the whole budget"""


@enum_docstrings
class AllocationOutcome(StrEnum):
    """How an allocation run ended"""

    allocated = "allocated"
    """At least one server was allocated"""

    empty = "empty"
    """Nothing was needed or affordable, e.g. zero CPUs or a tiny budget"""

    infeasible = "infeasible"
    """The CPU floor costs more than the budget allows"""


class AllocationRequest(ExcludeUnsetModel):
    model_config = ConfigDict(allow_inf_nan=False)

    hours: int = Field(gt=0)
    min_cpus: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("min_cpus", "minCPUs"),
    )
    max_price: Optional[NonNegativeFloat] = Field(
        default=None,
        validation_alias=AliasChoices("max_price", "maxPrice"),
    )

    @model_validator(mode="after")
    def _requires_cpus_or_price(self) -> "AllocationRequest":
        if self.min_cpus is None and self.max_price is None:
            raise ValueError("Please enter the minCPUs and/or maxPrice requirements")
        return self

    @property
    def strategy(self) -> AllocationStrategy:
        if self.max_price is None:
            return AllocationStrategy.min_cpus
        if self.min_cpus is None:
            return AllocationStrategy.max_price
        return AllocationStrategy.combined


class AllocationEntry(ExcludeUnsetModel):
    offer: Offer
    count: int = Field(ge=0)

    @property
    def cpus(self) -> int:
        return self.count * self.offer.cpu

    def cost(self, hours: int) -> Decimal:
        return self.offer.cost(self.count, hours)


class AllocationPlan(ExcludeUnsetModel):
    """Servers purchased by one strategy run, grouped by region

    Regions appear in the order they first received servers and each
    region lists its entries in allocation order.
    """

    hours: int
    regions: Dict[str, List[AllocationEntry]] = {}

    def region_cost(self, region: str) -> Decimal:
        costs = [entry.cost(self.hours) for entry in self.regions[region]]
        with wide_context(*costs):
            return sum(costs, Decimal(0))

    @computed_field(return_type=Decimal)  # type: ignore
    @property
    def total_cost(self):
        costs = [self.region_cost(r) for r in self.regions]
        with wide_context(*costs):
            return sum(costs, Decimal(0))

    @computed_field(return_type=int)  # type: ignore
    @property
    def total_cpus(self):
        return sum(e.cpus for entries in self.regions.values() for e in entries)

    @computed_field(return_type=bool)  # type: ignore
    @property
    def is_empty(self):
        return not any(e.count for entries in self.regions.values() for e in entries)


class AllocationResult(ExcludeUnsetModel):
    strategy: AllocationStrategy
    outcome: AllocationOutcome
    plan: AllocationPlan
    # Cost of the CPU floor, whenever the min_cpus phase ran
    minimum_cost: Optional[Decimal] = None

    @property
    def is_infeasible(self) -> bool:
        return self.outcome == AllocationOutcome.infeasible


class RegionAllocation(ExcludeUnsetModel):
    """One record of the allocation report"""

    region: str
    total_cost: str
    servers: List[Dict[str, int]] = []
