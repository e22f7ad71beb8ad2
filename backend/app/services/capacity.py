"""Per (vendor, date, slot) booking counters."""
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.logging import get_logger
from backend.app.core.metrics import capacity_reservations_total
from backend.app.core.settings import get_settings
from backend.app.models.vendor import VendorCapacity

logger = get_logger(__name__)


class CapacityStore:
    def __init__(self, session: AsyncSession, default_max_orders: Optional[int] = None):
        self.session = session
        if default_max_orders is None:
            default_max_orders = get_settings().DEFAULT_SLOT_CAPACITY
        self.default_max_orders = default_max_orders

    async def reserve_capacity(self, vendor_id: int, delivery_date: date, slot_id: int) -> bool:
        """
        Book one order for the vendor in (delivery_date, slot_id).

        The increment is a single conditional UPDATE guarded by
        `booked_orders < max_orders`, so two concurrent requests can never
        both take the last place. A missing row is created with
        `booked_orders=1`; if another request creates it first, the
        conditional update is retried against that row.

        Runs in the caller's transaction: rolling back the order releases
        the reservation.

        Returns:
            True if a place was booked, False if the slot is full.
        """
        if await self._increment(vendor_id, delivery_date, slot_id):
            capacity_reservations_total.labels(result="reserved").inc()
            return True

        existing = await self.session.scalar(
            select(VendorCapacity.id).where(
                VendorCapacity.vendor_id == vendor_id,
                VendorCapacity.date == delivery_date,
                VendorCapacity.slot_id == slot_id,
            )
        )
        if existing is not None:
            capacity_reservations_total.labels(result="full").inc()
            return False

        try:
            async with self.session.begin_nested():
                self.session.add(VendorCapacity(
                    vendor_id=vendor_id,
                    date=delivery_date,
                    slot_id=slot_id,
                    max_orders=self.default_max_orders,
                    booked_orders=1,
                ))
        except IntegrityError:
            logger.info(
                "Capacity row created concurrently, retrying increment",
                vendor_id=vendor_id, date=str(delivery_date), slot_id=slot_id,
            )
            if await self._increment(vendor_id, delivery_date, slot_id):
                capacity_reservations_total.labels(result="reserved").inc()
                return True
            capacity_reservations_total.labels(result="full").inc()
            return False

        capacity_reservations_total.labels(result="created").inc()
        return True

    async def get_counter(self, vendor_id: int, delivery_date: date, slot_id: int) -> Optional[tuple]:
        """(max_orders, booked_orders) straight from the table, or None."""
        result = await self.session.execute(
            select(VendorCapacity.max_orders, VendorCapacity.booked_orders).where(
                VendorCapacity.vendor_id == vendor_id,
                VendorCapacity.date == delivery_date,
                VendorCapacity.slot_id == slot_id,
            )
        )
        row = result.first()
        return tuple(row) if row else None

    async def _increment(self, vendor_id: int, delivery_date: date, slot_id: int) -> bool:
        result = await self.session.execute(
            update(VendorCapacity)
            .where(
                VendorCapacity.vendor_id == vendor_id,
                VendorCapacity.date == delivery_date,
                VendorCapacity.slot_id == slot_id,
                VendorCapacity.booked_orders < VendorCapacity.max_orders,
            )
            .values(booked_orders=VendorCapacity.booked_orders + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
