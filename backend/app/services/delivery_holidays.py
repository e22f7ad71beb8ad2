"""Platform and city delivery holidays (festival blocks, standard-only days, custom slot rules)."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import (
    HOLIDAY_FULL_BLOCK,
    HOLIDAY_STANDARD_ONLY,
    HOLIDAY_CUSTOM,
    STANDARD_SLOT_SLUG,
)
from backend.app.models.delivery import DeliveryHoliday


@dataclass(frozen=True)
class SlotOverride:
    blocked: bool = False
    price_override: Optional[Decimal] = None


@dataclass(frozen=True)
class HolidayRule:
    """The holiday that applies to one (city, date)."""
    mode: str
    message: str
    overrides: Dict[str, SlotOverride] = field(default_factory=dict)

    @property
    def blocks_day(self) -> bool:
        return self.mode == HOLIDAY_FULL_BLOCK

    def slot_blocked(self, slug: str) -> bool:
        if self.mode == HOLIDAY_FULL_BLOCK:
            return True
        if self.mode == HOLIDAY_STANDARD_ONLY:
            return slug != STANDARD_SLOT_SLUG
        if self.mode == HOLIDAY_CUSTOM:
            override = self.overrides.get(slug)
            return override is not None and override.blocked
        return False

    def price_override(self, slug: str) -> Optional[Decimal]:
        if self.mode != HOLIDAY_CUSTOM:
            return None
        override = self.overrides.get(slug)
        return override.price_override if override else None


def rule_from_row(row: DeliveryHoliday) -> HolidayRule:
    overrides = {}
    if row.mode == HOLIDAY_CUSTOM:
        for item in row.slot_overrides or []:
            slug = item.get("slug")
            if not slug:
                continue
            price = item.get("price_override")
            overrides[slug] = SlotOverride(
                blocked=bool(item.get("blocked")),
                price_override=Decimal(str(price)) if price is not None else None,
            )
    return HolidayRule(
        mode=row.mode,
        message=row.customer_message or row.reason,
        overrides=overrides,
    )


class DeliveryHolidayLoader:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def for_range(self, city_id: int, start: date, end: date) -> Dict[date, HolidayRule]:
        """Holiday rule per date in [start, end]; a city row replaces the platform row."""
        result = await self.session.execute(
            select(DeliveryHoliday)
            .where(
                DeliveryHoliday.date >= start,
                DeliveryHoliday.date <= end,
                or_(DeliveryHoliday.city_id == city_id, DeliveryHoliday.city_id.is_(None)),
            )
            .order_by(DeliveryHoliday.date, DeliveryHoliday.id)
        )
        rows: Dict[date, DeliveryHoliday] = {}
        for row in result.scalars():
            existing = rows.get(row.date)
            if existing is None or (row.city_id is not None and existing.city_id is None):
                rows[row.date] = row
        return {day: rule_from_row(row) for day, row in rows.items()}

    async def for_date(self, city_id: int, day: date) -> Optional[HolidayRule]:
        return (await self.for_range(city_id, day, day)).get(day)
