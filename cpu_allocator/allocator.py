# -*- coding: utf-8 -*-
import logging
import math
from decimal import Decimal
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence

from cpu_allocator.catalog import catalogs
from cpu_allocator.interface import AllocationEntry
from cpu_allocator.interface import AllocationOutcome
from cpu_allocator.interface import AllocationPlan
from cpu_allocator.interface import AllocationRequest
from cpu_allocator.interface import AllocationResult
from cpu_allocator.interface import Catalog
from cpu_allocator.interface import EmptyCatalogError
from cpu_allocator.interface import Offer
from cpu_allocator.interface import to_decimal
from cpu_allocator.interface import wide_context

logger = logging.getLogger(__name__)


def rank_offers(offers: Iterable[Offer]) -> List[Offer]:
    """Orders offers by hourly cost per CPU, cheapest first

    sorted() is stable so offers with the same cost per CPU keep their
    catalog order, which decides deterministically which region gets
    the cheaper units.
    """
    return sorted(offers, key=lambda offer: offer.cost_per_cpu)


def filler_candidate(offers: Sequence[Offer]) -> Offer:
    """The offer with the lowest raw hourly cost

    Ties go to the earliest offer in the given order.
    """
    if not offers:
        raise EmptyCatalogError("No offers available to cover the remaining CPUs")
    return min(offers, key=lambda offer: to_decimal(offer.hourly_cost))


class _PlanBuilder:
    """Instance counts for a single strategy run

    A fresh builder is created for every run so counts can never leak from
    one strategy call into the next.
    """

    def __init__(self, hours: int):
        self.hours = hours
        self.counts: Dict[int, int] = {}
        self._placed: Dict[str, List[Offer]] = {}

    def place(self, offer: Offer, count: int) -> None:
        self.counts[offer.offer_id] = count
        # placing an offer again moves it to the end of its region
        region = [
            o
            for o in self._placed.get(offer.region, [])
            if o.offer_id != offer.offer_id
        ]
        region.append(offer)
        self._placed[offer.region] = region

    def count(self, offer: Offer) -> int:
        return self.counts.get(offer.offer_id, 0)

    def build(self) -> AllocationPlan:
        return AllocationPlan(
            hours=self.hours,
            regions={
                region: [
                    AllocationEntry(offer=offer, count=self.count(offer))
                    for offer in offers
                ]
                for region, offers in self._placed.items()
            },
        )


def _check_hours(hours: int) -> None:
    if hours <= 0:
        raise ValueError(f"hours must be positive, got {hours}")


class CpuAllocator:
    def __init__(self, catalog: Optional[Catalog] = None):
        self._catalog = catalog

    def load(self, catalog: Catalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> Catalog:
        if self._catalog is None:
            return catalogs.catalog
        return self._catalog

    def ranked_offers(self) -> List[Offer]:
        return rank_offers(self.catalog.offers())

    def allocate_min_cpus(self, hours: int, min_cpus: int) -> AllocationPlan:
        """Cheapest plan delivering at least min_cpus CPUs for the given hours

        Greedily buys as many of each offer as fit in the remaining CPUs,
        cheapest per CPU first. If the sizes cannot add up to exactly
        min_cpus, one more unit of the cheapest offer by raw hourly cost is
        bought, accepting some over-provisioning.
        """
        _check_hours(hours)
        if min_cpus < 0:
            raise ValueError(f"min_cpus must not be negative, got {min_cpus}")

        ranked = self.ranked_offers()
        if min_cpus > 0 and not ranked:
            raise EmptyCatalogError(
                f"Cannot allocate {min_cpus} CPUs from an empty catalog"
            )

        builder = _PlanBuilder(hours)
        remaining = min_cpus
        for offer in ranked:
            if remaining == 0:
                break
            count = remaining // offer.cpu
            if count > 0:
                builder.place(offer, count)
                remaining -= count * offer.cpu
                logger.debug(
                    "Allocated %d x %s in %s, %d CPUs remaining",
                    count,
                    offer.size,
                    offer.region,
                    remaining,
                )

        if remaining > 0:
            filler = filler_candidate(ranked)
            builder.place(filler, builder.count(filler) + 1)
            logger.debug(
                "Covering %d remaining CPUs with one more %s in %s",
                remaining,
                filler.size,
                filler.region,
            )

        return builder.build()

    def minimum_cost(self, hours: int, min_cpus: int) -> Decimal:
        return self.allocate_min_cpus(hours, min_cpus).total_cost

    def allocate_max_price(self, hours: int, max_price: float) -> AllocationPlan:
        """Most CPUs purchasable for max_price over the given hours

        Spends the budget on the cheapest offers per CPU first. Budget that
        cannot buy one more unit of any remaining offer is left unspent.
        """
        _check_hours(hours)
        if not math.isfinite(max_price) or max_price < 0:
            raise ValueError(
                f"max_price must be a finite amount of at least 0, got {max_price}"
            )

        builder = _PlanBuilder(hours)
        budget = to_decimal(max_price)
        for offer in self.ranked_offers():
            if budget <= 0:
                break
            unit_cost = offer.cost(1, hours)
            if unit_cost == 0:
                logger.debug(
                    "Skipping %s in %s, it has no hourly cost", offer.size, offer.region
                )
                continue
            with wide_context(budget, unit_cost):
                count = int(budget // unit_cost)
                if count > 0:
                    budget -= count * unit_cost
            if count > 0:
                builder.place(offer, count)
                logger.debug(
                    "Allocated %d x %s in %s, %s budget remaining",
                    count,
                    offer.size,
                    offer.region,
                    budget,
                )

        return builder.build()

    def allocate(self, request: AllocationRequest) -> AllocationResult:
        strategy = request.strategy
        hours = request.hours

        if request.min_cpus is None:
            # max_price only, the request model guarantees one of the two
            plan = self.allocate_max_price(hours, request.max_price or 0)
            return AllocationResult(
                strategy=strategy, outcome=_outcome(plan), plan=plan
            )

        plan = self.allocate_min_cpus(hours, request.min_cpus)
        minimum_cost = plan.total_cost
        if request.max_price is not None:
            budget = to_decimal(request.max_price)
            if minimum_cost > budget:
                logger.warning(
                    "Minimum cost %s for %d CPUs exceeds the budget %s",
                    minimum_cost,
                    request.min_cpus,
                    budget,
                )
                return AllocationResult(
                    strategy=strategy,
                    outcome=AllocationOutcome.infeasible,
                    plan=AllocationPlan(hours=hours),
                    minimum_cost=minimum_cost,
                )
            logger.info(
                "Minimum cost %s fits the budget %s, maximizing CPUs for the budget",
                minimum_cost,
                budget,
            )
            plan = self.allocate_max_price(hours, request.max_price)

        return AllocationResult(
            strategy=strategy,
            outcome=_outcome(plan),
            plan=plan,
            minimum_cost=minimum_cost,
        )


def _outcome(plan: AllocationPlan) -> AllocationOutcome:
    if plan.is_empty:
        return AllocationOutcome.empty
    return AllocationOutcome.allocated


allocator: CpuAllocator = CpuAllocator()
