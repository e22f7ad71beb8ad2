"""Delivery slot catalog, per-city availability and the bookable-date calendar."""
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Dict, Any, Optional, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import VENDOR_APPROVED
from backend.app.core.exceptions import ServiceError, NotFoundError
from backend.app.core.logging import get_logger
from backend.app.core.settings import get_settings
from backend.app.models.delivery import City, CityDeliveryConfig, DeliverySlot
from backend.app.models.product import Product
from backend.app.models.vendor import Vendor, VendorProduct, VendorWorkingHours
from backend.app.services.charges import ChargeDataLoader
from backend.app.services.delivery_holidays import DeliveryHolidayLoader
from backend.app.services.eligibility import (
    EligibilityRequest,
    VendorSnapshotLoader,
    day_of_week,
    filter_eligible,
    is_on_vacation,
    ready_before_close,
    rejection_reason,
    required_lead_time,
)

logger = get_logger(__name__)

MSG_FULL = "All vendors are fully booked for this slot"
MSG_UNAVAILABLE = "No vendor can deliver in this slot"
MSG_PAST_CLOSING = "Preparation time exceeds vendor closing time"


class DeliveryServiceError(ServiceError):
    """Base exception for delivery availability errors."""


def business_now() -> datetime:
    """Current wall-clock time in the business timezone."""
    return datetime.now(ZoneInfo(get_settings().BUSINESS_TIMEZONE))


class DeliveryAvailabilityService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.vendors = VendorSnapshotLoader(session)
        self.charge_data = ChargeDataLoader(session)
        self.holidays = DeliveryHolidayLoader(session)

    async def list_slots(self) -> List[DeliverySlot]:
        """Active platform slots in order of their start time."""
        result = await self.session.execute(
            select(DeliverySlot)
            .where(DeliverySlot.is_active == True)
            .order_by(DeliverySlot.start_time, DeliverySlot.id)
        )
        return list(result.scalars().all())

    async def _lead_time(self, product_ids: Sequence[int]) -> int:
        floor_hours = get_settings().MIN_LEAD_TIME_HOURS
        if not product_ids:
            return floor_hours
        result = await self.session.execute(
            select(Product.min_lead_time_hours).where(Product.id.in_(list(product_ids)))
        )
        return required_lead_time([h or 0 for h in result.scalars().all()], floor_hours)

    async def _active_city(self, city_id: int) -> City:
        city = await self.session.get(City, city_id)
        if city is None or not city.is_active:
            raise NotFoundError("City", city_id)
        return city

    async def _city_slots(self, city_id: int):
        result = await self.session.execute(
            select(DeliverySlot, CityDeliveryConfig)
            .join(CityDeliveryConfig, CityDeliveryConfig.slot_id == DeliverySlot.id)
            .where(
                CityDeliveryConfig.city_id == city_id,
                CityDeliveryConfig.is_available == True,
                DeliverySlot.is_active == True,
            )
            .order_by(DeliverySlot.start_time, DeliverySlot.id)
        )
        return result.all()

    async def get_availability(
        self,
        city_id: int,
        delivery_date: date,
        product_ids: Sequence[int] = (),
        local_now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Slots enabled for the city on `delivery_date`, each with its price and
        whether any vendor in the city could take an order for `product_ids`.

        A slot is `is_full` when the only thing stopping every vendor is
        capacity. A FULL_BLOCK delivery holiday empties the list, other
        holiday modes drop blocked slots and may fix a slot's price. For a
        same-day date at least one eligible vendor must finish preparing
        before it closes.
        """
        await self._active_city(city_id)
        local_now = local_now or business_now()
        if delivery_date < local_now.date():
            raise DeliveryServiceError(f"Delivery date {delivery_date.isoformat()} is in the past")

        holiday = await self.holidays.for_date(city_id, delivery_date)
        if holiday is not None and holiday.blocks_day:
            logger.info("Delivery date blocked by holiday", city_id=city_id, delivery_date=str(delivery_date))
            return {
                "city_id": city_id,
                "delivery_date": delivery_date,
                "slots": [],
                "fully_blocked": True,
                "holiday_reason": holiday.message,
            }

        product_ids = tuple(sorted(set(product_ids)))
        lead_time = await self._lead_time(product_ids)
        categories = await self.charge_data.category_slugs(product_ids)
        now = datetime.utcnow()
        is_today = delivery_date == local_now.date()

        slots = []
        for slot, config in await self._city_slots(city_id):
            if holiday is not None and holiday.slot_blocked(slot.slug):
                continue

            request = EligibilityRequest(
                delivery_date=delivery_date,
                slot_id=slot.id,
                product_ids=product_ids,
                required_lead_time_hours=lead_time,
                city_id=city_id,
            )
            vendors = await self.vendors.load_for_city(city_id, delivery_date, slot.id, product_ids)
            eligible = filter_eligible(vendors, request, now=now)
            is_full = not eligible and any(
                rejection_reason(v, request, now, ignore_capacity=True) is None for v in vendors
            )

            reason = None
            if is_full:
                reason = MSG_FULL
            elif not eligible:
                reason = MSG_UNAVAILABLE
            elif is_today:
                eligible = [v for v in eligible if ready_before_close(v, product_ids, delivery_date, local_now)]
                if not eligible:
                    reason = MSG_PAST_CLOSING

            price = holiday.price_override(slot.slug) if holiday is not None else None
            if price is None:
                price = Decimal(config.charge_override if config.charge_override is not None else slot.base_charge or 0)
                surcharges = await self.charge_data.platform_surcharges(delivery_date, city_id, slot.slug, categories)
                price += sum((line.amount for line in surcharges), Decimal(0))

            slots.append({
                "slug": slot.slug,
                "name": slot.name,
                "start_time": slot.start_time,
                "end_time": slot.end_time,
                "price": price,
                "is_available": bool(eligible),
                "is_full": is_full,
                "eligible_vendors": len(eligible),
                "reason": reason,
            })

        return {
            "city_id": city_id,
            "delivery_date": delivery_date,
            "slots": slots,
            "fully_blocked": False,
            "holiday_reason": holiday.message if holiday is not None else None,
        }

    async def get_available_dates(
        self,
        city_id: int,
        product_ids: Sequence[int] = (),
        days: int = 15,
        local_now: Optional[datetime] = None,
    ) -> List[date]:
        """
        Dates from today through today + `days` on which the city delivers
        and some approved vendor stocking every product in `product_ids` is
        open. Slot capacity is not consulted.
        """
        await self._active_city(city_id)
        local_now = local_now or business_now()
        today = local_now.date()
        end = today + timedelta(days=days)

        configs = await self._city_slots(city_id)
        if not configs:
            return []
        slugs = {slot.slug for slot, _ in configs}

        query = select(Vendor).where(
            Vendor.city_id == city_id,
            Vendor.status == VENDOR_APPROVED,
            Vendor.is_online == True,
        )
        product_ids = sorted(set(product_ids))
        if product_ids:
            stocked = (
                select(VendorProduct.vendor_id)
                .where(VendorProduct.product_id.in_(product_ids), VendorProduct.is_available == True)
                .group_by(VendorProduct.vendor_id)
                .having(func.count(VendorProduct.product_id.distinct()) == len(product_ids))
            )
            query = query.where(Vendor.id.in_(stocked))
        result = await self.session.execute(query.order_by(Vendor.id))
        now = datetime.utcnow()
        vendors = [v for v in result.scalars().all() if not is_on_vacation(v, now)]
        if not vendors:
            return []

        rows = await self.session.execute(
            select(VendorWorkingHours.day_of_week).where(
                VendorWorkingHours.vendor_id.in_([v.id for v in vendors]),
                VendorWorkingHours.is_closed == False,
            )
        )
        open_days = set(rows.scalars().all())

        holidays = await self.holidays.for_range(city_id, today, end)
        available = []
        for offset in range(days + 1):
            day = today + timedelta(days=offset)
            holiday = holidays.get(day)
            # STANDARD_ONLY and CUSTOM days stay bookable while one city slot survives
            if holiday is not None and all(holiday.slot_blocked(slug) for slug in slugs):
                continue
            if day_of_week(day) in open_days:
                available.append(day)
        return available
