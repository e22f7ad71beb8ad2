"""
Vendor allocation for a new order.

Two strategies share one interface:

* `StrictAllocation` applies every eligibility check, ranks the survivors and
  books capacity for the first vendor whose reservation succeeds.
* `PincodeOnlyFallbackAllocation` only requires an APPROVED vendor with an
  active row for the pincode, best rating first. It ignores slots, hours,
  holidays and capacity, so it can pick a vendor the strict path rejected.

`AllocationPolicy` runs them in order and returns the first allocation.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from backend.app.core.constants import VENDOR_APPROVED
from backend.app.core.logging import get_logger
from backend.app.core.metrics import vendor_allocations_total
from backend.app.services.capacity import CapacityStore
from backend.app.services.eligibility import (
    EligibilityRequest,
    VendorSnapshot,
    VendorSnapshotLoader,
    filter_eligible,
)
from backend.app.services.ranking import rank_vendors, rank_by_rating

logger = get_logger(__name__)

STRATEGY_STRICT = "strict"
STRATEGY_FALLBACK = "fallback"
STRATEGY_NONE = "none"


@dataclass(frozen=True)
class AllocationContext:
    pincode: str
    delivery_date: date
    slot_id: int
    product_ids: Tuple[int, ...]
    required_lead_time_hours: int
    # None when the pincode is in no active zone
    city_id: Optional[int] = None
    now: datetime = field(default_factory=datetime.utcnow)

    def eligibility_request(self) -> EligibilityRequest:
        return EligibilityRequest(
            delivery_date=self.delivery_date,
            slot_id=self.slot_id,
            product_ids=self.product_ids,
            required_lead_time_hours=self.required_lead_time_hours,
            city_id=self.city_id,
            pincode=self.pincode,
        )


@dataclass(frozen=True)
class Allocation:
    vendor: VendorSnapshot
    strategy: str
    capacity_reserved: bool

    @property
    def vendor_id(self) -> int:
        return self.vendor.id


class AllocationStrategy(ABC):
    """Picks one vendor out of the pincode's candidates, or None."""

    name: str = ""

    def __init__(self, capacity: CapacityStore):
        self.capacity = capacity

    @abstractmethod
    async def allocate(
        self, context: AllocationContext, candidates: Sequence[VendorSnapshot]
    ) -> Optional[Allocation]:
        pass


class StrictAllocation(AllocationStrategy):
    name = STRATEGY_STRICT

    async def allocate(
        self, context: AllocationContext, candidates: Sequence[VendorSnapshot]
    ) -> Optional[Allocation]:
        if context.city_id is None:
            return None
        eligible = filter_eligible(candidates, context.eligibility_request(), now=context.now)
        for vendor in rank_vendors(eligible, context.delivery_date, context.slot_id):
            if await self.capacity.reserve_capacity(vendor.id, context.delivery_date, context.slot_id):
                return Allocation(vendor=vendor, strategy=self.name, capacity_reserved=True)
            # Another order took the last place after the snapshot was read
            logger.warning(
                "Lost capacity race, trying next vendor",
                vendor_id=vendor.id,
                date=str(context.delivery_date),
                slot_id=context.slot_id,
            )
        return None


class PincodeOnlyFallbackAllocation(AllocationStrategy):
    name = STRATEGY_FALLBACK

    async def allocate(
        self, context: AllocationContext, candidates: Sequence[VendorSnapshot]
    ) -> Optional[Allocation]:
        serving = [
            v for v in candidates
            if v.status == VENDOR_APPROVED and context.pincode in v.pincodes
        ]
        if not serving:
            return None
        vendor = rank_by_rating(serving)[0]
        reserved = await self.capacity.reserve_capacity(vendor.id, context.delivery_date, context.slot_id)
        if not reserved:
            logger.warning(
                "Fallback vendor assigned over capacity",
                vendor_id=vendor.id,
                date=str(context.delivery_date),
                slot_id=context.slot_id,
            )
        return Allocation(vendor=vendor, strategy=self.name, capacity_reserved=reserved)


class AllocationPolicy:
    """Strict first, then the pincode-only fallback."""

    def __init__(self, loader: VendorSnapshotLoader, strategies: List[AllocationStrategy]):
        self.loader = loader
        self.strategies = strategies

    @classmethod
    def default(cls, session) -> "AllocationPolicy":
        capacity = CapacityStore(session)
        return cls(
            VendorSnapshotLoader(session),
            [StrictAllocation(capacity), PincodeOnlyFallbackAllocation(capacity)],
        )

    async def allocate(self, context: AllocationContext) -> Optional[Allocation]:
        candidates = await self.loader.load_for_pincode(
            context.pincode, context.delivery_date, context.slot_id, context.product_ids
        )
        for strategy in self.strategies:
            allocation = await strategy.allocate(context, candidates)
            if allocation is not None:
                vendor_allocations_total.labels(strategy=strategy.name).inc()
                logger.info(
                    "Vendor allocated",
                    vendor_id=allocation.vendor_id,
                    strategy=strategy.name,
                    capacity_reserved=allocation.capacity_reserved,
                )
                return allocation

        vendor_allocations_total.labels(strategy=STRATEGY_NONE).inc()
        logger.warning(
            "No vendor available, order left unassigned",
            pincode=context.pincode,
            date=str(context.delivery_date),
            slot_id=context.slot_id,
            candidates=len(candidates),
        )
        return None
