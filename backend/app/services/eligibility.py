"""
Vendor eligibility for a delivery request.

The checks are pure functions over `VendorSnapshot` values so they can be
unit tested without a database. `VendorSnapshotLoader` reads everything a
request needs in a handful of bulk queries.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import VENDOR_APPROVED, ZERO
from backend.app.models.vendor import (
    Vendor,
    VendorPincode,
    VendorWorkingHours,
    VendorSlot,
    VendorHoliday,
    VendorCapacity,
    VendorProduct,
)

# Rejection reasons, in the order the checks run
REASON_PINCODE = "pincode_not_served"
REASON_CITY = "other_city"
REASON_NOT_APPROVED = "not_approved"
REASON_OFFLINE = "offline"
REASON_VACATION = "on_vacation"
REASON_CLOSED = "closed_that_day"
REASON_SLOT_DISABLED = "slot_not_offered"
REASON_HOLIDAY = "holiday"
REASON_CAPACITY = "capacity_full"
REASON_PRODUCT_MISSING = "product_not_stocked"
REASON_LEAD_TIME = "lead_time_exceeded"


@dataclass(frozen=True)
class CapacityCounter:
    max_orders: int
    booked_orders: int

    @property
    def is_full(self) -> bool:
        return self.booked_orders >= self.max_orders


@dataclass
class VendorSnapshot:
    """Read-only view of one vendor and the configuration rows the allocator checks."""
    id: int
    city_id: int
    status: str
    is_online: bool
    rating: Decimal = ZERO
    commission_rate: Decimal = ZERO
    vacation_start: Optional[datetime] = None
    vacation_end: Optional[datetime] = None
    # active pincode -> vendor-specific delivery charge
    pincodes: Dict[str, Decimal] = field(default_factory=dict)
    # day of week (0 = Sunday) -> is_closed
    working_days: Dict[int, bool] = field(default_factory=dict)
    # day of week -> closing time "HH:MM"
    close_times: Dict[int, str] = field(default_factory=dict)
    enabled_slot_ids: FrozenSet[int] = frozenset()
    # holiday date -> blocked slot ids; empty tuple blocks the whole day
    holidays: Dict[date, Tuple[int, ...]] = field(default_factory=dict)
    capacity: Dict[Tuple[date, int], CapacityCounter] = field(default_factory=dict)
    # available product id -> preparation time in minutes
    products: Dict[int, int] = field(default_factory=dict)

    def booked_orders(self, delivery_date: date, slot_id: int) -> int:
        counter = self.capacity.get((delivery_date, slot_id))
        return counter.booked_orders if counter else 0

    def pincode_charge(self, pincode: Optional[str]) -> Decimal:
        if pincode is None:
            return ZERO
        return self.pincodes.get(pincode, ZERO)


@dataclass(frozen=True)
class EligibilityRequest:
    """What an order (or an availability check) asks of a vendor.

    `pincode=None` skips the pincode check and `city_id=None` skips the city
    check; the availability listing checks a whole city that way.
    """
    delivery_date: date
    slot_id: int
    product_ids: Tuple[int, ...]
    required_lead_time_hours: int
    city_id: Optional[int] = None
    pincode: Optional[str] = None


def to_date(value) -> date:
    """Normalize a date or datetime to a plain calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def day_of_week(value: date) -> int:
    """Weekday with Sunday = 0, matching VendorWorkingHours.day_of_week."""
    return (value.weekday() + 1) % 7


def prep_hours(minutes: int) -> int:
    return math.ceil(minutes / 60)


def required_lead_time(product_lead_times: Iterable[int], floor_hours: int) -> int:
    """The slowest product binds the order, never below `floor_hours`."""
    return max([floor_hours, *product_lead_times])


def is_on_vacation(vendor: VendorSnapshot, now: datetime) -> bool:
    start, end = vendor.vacation_start, vendor.vacation_end
    if start is None and end is None:
        return False
    if start is not None and start > now:
        return False
    if end is not None and end < now:
        return False
    return True


def rejection_reason(
    vendor: VendorSnapshot,
    request: EligibilityRequest,
    now: datetime,
    ignore_capacity: bool = False,
) -> Optional[str]:
    """Return the first failed check for `vendor`, or None when it is eligible."""
    delivery_date = to_date(request.delivery_date)

    if request.pincode is not None and request.pincode not in vendor.pincodes:
        return REASON_PINCODE
    if request.city_id is not None and vendor.city_id != request.city_id:
        return REASON_CITY
    if vendor.status != VENDOR_APPROVED:
        return REASON_NOT_APPROVED
    if not vendor.is_online:
        return REASON_OFFLINE
    if is_on_vacation(vendor, now):
        return REASON_VACATION

    is_closed = vendor.working_days.get(day_of_week(delivery_date))
    if is_closed is None or is_closed:
        return REASON_CLOSED
    if request.slot_id not in vendor.enabled_slot_ids:
        return REASON_SLOT_DISABLED

    if delivery_date in vendor.holidays:
        blocked = vendor.holidays[delivery_date]
        if not blocked or request.slot_id in blocked:
            return REASON_HOLIDAY

    # No counter row yet means nothing is booked
    counter = vendor.capacity.get((delivery_date, request.slot_id))
    if not ignore_capacity and counter is not None and counter.is_full:
        return REASON_CAPACITY

    if any(pid not in vendor.products for pid in request.product_ids):
        return REASON_PRODUCT_MISSING
    if request.product_ids:
        slowest = max(vendor.products[pid] for pid in request.product_ids)
        if prep_hours(slowest) > request.required_lead_time_hours:
            return REASON_LEAD_TIME
    return None


def minutes_of_day(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def ready_before_close(
    vendor: VendorSnapshot,
    product_ids: Sequence[int],
    delivery_date: date,
    local_now: datetime,
) -> bool:
    """
    Same-day check: an order placed at `local_now` (business time) must be
    prepared before the vendor closes that day.
    """
    close_time = vendor.close_times.get(day_of_week(delivery_date))
    if not close_time:
        return False
    prep_minutes = max((vendor.products.get(pid, 0) for pid in product_ids), default=0)
    now_minutes = local_now.hour * 60 + local_now.minute
    return now_minutes + prep_minutes < minutes_of_day(close_time)


def filter_eligible(
    vendors: Sequence[VendorSnapshot],
    request: EligibilityRequest,
    now: Optional[datetime] = None,
) -> List[VendorSnapshot]:
    """Vendors that pass every check, in input order."""
    now = now or datetime.utcnow()
    return [v for v in vendors if rejection_reason(v, request, now) is None]


class VendorSnapshotLoader:
    """Bulk-loads vendor snapshots for one (date, slot, products) request."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_for_pincode(
        self,
        pincode: str,
        delivery_date: date,
        slot_id: int,
        product_ids: Sequence[int],
    ) -> List[VendorSnapshot]:
        """Candidates with an active VendorPincode row for `pincode`."""
        result = await self.session.execute(
            select(Vendor)
            .join(VendorPincode, VendorPincode.vendor_id == Vendor.id)
            .where(VendorPincode.pincode == pincode, VendorPincode.is_active == True)
            .order_by(Vendor.id)
        )
        vendors = list(result.scalars().unique().all())
        return await self._build(vendors, delivery_date, slot_id, product_ids)

    async def load_for_city(
        self,
        city_id: int,
        delivery_date: date,
        slot_id: int,
        product_ids: Sequence[int],
    ) -> List[VendorSnapshot]:
        result = await self.session.execute(
            select(Vendor).where(Vendor.city_id == city_id).order_by(Vendor.id)
        )
        vendors = list(result.scalars().all())
        return await self._build(vendors, delivery_date, slot_id, product_ids)

    async def _build(
        self,
        vendors: List[Vendor],
        delivery_date: date,
        slot_id: int,
        product_ids: Sequence[int],
    ) -> List[VendorSnapshot]:
        if not vendors:
            return []
        delivery_date = to_date(delivery_date)
        ids = [v.id for v in vendors]
        snapshots = {
            v.id: VendorSnapshot(
                id=v.id,
                city_id=v.city_id,
                status=v.status,
                is_online=v.is_online,
                rating=Decimal(v.rating or 0),
                commission_rate=Decimal(v.commission_rate or 0),
                vacation_start=v.vacation_start,
                vacation_end=v.vacation_end,
            )
            for v in vendors
        }

        rows = await self.session.execute(
            select(VendorPincode).where(VendorPincode.vendor_id.in_(ids), VendorPincode.is_active == True)
        )
        for row in rows.scalars():
            snapshots[row.vendor_id].pincodes[row.pincode] = Decimal(row.delivery_charge or 0)

        rows = await self.session.execute(
            select(VendorWorkingHours).where(
                VendorWorkingHours.vendor_id.in_(ids),
                VendorWorkingHours.day_of_week == day_of_week(delivery_date),
            )
        )
        for row in rows.scalars():
            snapshots[row.vendor_id].working_days[row.day_of_week] = row.is_closed
            snapshots[row.vendor_id].close_times[row.day_of_week] = row.close_time

        rows = await self.session.execute(
            select(VendorSlot.vendor_id, VendorSlot.slot_id).where(
                VendorSlot.vendor_id.in_(ids), VendorSlot.is_enabled == True
            )
        )
        enabled: Dict[int, set] = {}
        for vendor_id, enabled_slot in rows.all():
            enabled.setdefault(vendor_id, set()).add(enabled_slot)
        for vendor_id, slot_ids in enabled.items():
            snapshots[vendor_id].enabled_slot_ids = frozenset(slot_ids)

        rows = await self.session.execute(
            select(VendorHoliday).where(VendorHoliday.vendor_id.in_(ids), VendorHoliday.date == delivery_date)
        )
        for row in rows.scalars():
            snapshots[row.vendor_id].holidays[to_date(row.date)] = tuple(row.blocked_slots or ())

        rows = await self.session.execute(
            select(VendorCapacity).where(
                VendorCapacity.vendor_id.in_(ids),
                VendorCapacity.date == delivery_date,
                VendorCapacity.slot_id == slot_id,
            )
        )
        for row in rows.scalars():
            snapshots[row.vendor_id].capacity[(to_date(row.date), row.slot_id)] = CapacityCounter(
                max_orders=row.max_orders, booked_orders=row.booked_orders
            )

        if product_ids:
            rows = await self.session.execute(
                select(VendorProduct).where(
                    VendorProduct.vendor_id.in_(ids),
                    VendorProduct.product_id.in_(list(product_ids)),
                    VendorProduct.is_available == True,
                )
            )
            for row in rows.scalars():
                snapshots[row.vendor_id].products[row.product_id] = row.preparation_time

        return [snapshots[v.id] for v in vendors]
