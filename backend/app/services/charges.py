"""
Delivery charge and surcharge calculation.

Totals are built in two steps. `PreliminaryCharges` is known before a vendor
is allocated; `with_vendor_surcharge` turns it into `FinalCharges` once the
vendor's pincode charge and service-area surcharge are known. Only
`FinalCharges` exposes a total, so a pre-allocation figure cannot be stored
or returned by mistake.
"""
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import (
    SURCHARGE_APPLIES_ALL,
    SURCHARGE_SLOT_PREFIX,
    SURCHARGE_CATEGORY_PREFIX,
    ZERO,
)
from backend.app.models.category import Category
from backend.app.models.delivery import (
    City,
    CityZone,
    CityDeliveryConfig,
    DeliverySlot,
    PlatformSurcharge,
    ServiceArea,
)
from backend.app.models.product import Product
from backend.app.models.vendor import VendorServiceArea


@dataclass(frozen=True)
class ZoneInfo:
    """The active zone a pincode falls in, with its city's delivery terms."""
    zone_id: int
    zone_name: str
    extra_charge: Decimal
    city_id: int
    city_slug: str
    base_delivery_charge: Decimal
    free_delivery_above: Optional[Decimal] = None


@dataclass(frozen=True)
class SurchargeLine:
    name: str
    amount: Decimal

    def as_dict(self) -> dict:
        return {"name": self.name, "amount": float(self.amount)}


@dataclass(frozen=True)
class FinalCharges:
    subtotal: Decimal
    delivery_charge: Decimal
    surcharge: Decimal
    surcharge_breakdown: Tuple[SurchargeLine, ...]
    discount: Decimal
    cod_fee: Decimal

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.delivery_charge + self.surcharge + self.cod_fee - self.discount


@dataclass(frozen=True)
class PreliminaryCharges:
    """Charges known before allocation. Deliberately has no `total`."""
    subtotal: Decimal
    delivery_charge: Decimal
    platform_surcharge: Decimal
    surcharge_breakdown: Tuple[SurchargeLine, ...] = ()
    discount: Decimal = ZERO
    cod_fee: Decimal = ZERO

    def with_discount(self, discount: Decimal) -> "PreliminaryCharges":
        return replace(self, discount=discount)

    def with_cod_fee(self, cod_fee: Decimal) -> "PreliminaryCharges":
        return replace(self, cod_fee=cod_fee)

    def with_vendor_surcharge(
        self,
        pincode_charge: Decimal = ZERO,
        area_surcharge: Decimal = ZERO,
        area_name: str = "Vendor service area",
    ) -> FinalCharges:
        """Fold in the allocated vendor's terms (both zero when no vendor)."""
        delivery_charge = self.delivery_charge
        if pincode_charge > 0:
            delivery_charge += pincode_charge
        breakdown = list(self.surcharge_breakdown)
        if area_surcharge > 0:
            breakdown.insert(0, SurchargeLine(area_name, area_surcharge))
        return FinalCharges(
            subtotal=self.subtotal,
            delivery_charge=delivery_charge,
            surcharge=self.platform_surcharge + max(area_surcharge, ZERO),
            surcharge_breakdown=tuple(breakdown),
            discount=self.discount,
            cod_fee=self.cod_fee,
        )


def base_delivery_charge(subtotal: Decimal, zone: Optional[ZoneInfo]) -> Decimal:
    """City base + zone extra, waived at or above the city's free-delivery threshold."""
    if zone is None:
        return ZERO
    if zone.free_delivery_above is not None and subtotal >= zone.free_delivery_above:
        return ZERO
    return zone.base_delivery_charge + zone.extra_charge


def surcharge_applies(applies_to: str, slot_slug: str, category_slugs: Iterable[str]) -> bool:
    """
    Match a platform surcharge target against the order.

    "all" always matches, "slot:<slug>" matches the delivery slot and
    "category:<slug>" matches any ordered product's category. A bare slug is
    read as a category.
    """
    target = (applies_to or SURCHARGE_APPLIES_ALL).strip()
    if target == SURCHARGE_APPLIES_ALL:
        return True
    if target.startswith(SURCHARGE_SLOT_PREFIX):
        return target[len(SURCHARGE_SLOT_PREFIX):] == slot_slug
    if target.startswith(SURCHARGE_CATEGORY_PREFIX):
        target = target[len(SURCHARGE_CATEGORY_PREFIX):]
    return target in set(category_slugs)


def surcharge_is_active(surcharge: PlatformSurcharge, delivery_date: date, city_id: Optional[int]) -> bool:
    if not surcharge.is_active:
        return False
    if not (surcharge.start_date <= delivery_date <= surcharge.end_date):
        return False
    return surcharge.city_id is None or surcharge.city_id == city_id


def platform_surcharge_lines(
    surcharges: Sequence[PlatformSurcharge],
    delivery_date: date,
    city_id: Optional[int],
    slot_slug: str,
    category_slugs: Iterable[str],
) -> List[SurchargeLine]:
    category_slugs = set(category_slugs)
    return [
        SurchargeLine(s.name, Decimal(s.amount))
        for s in surcharges
        if surcharge_is_active(s, delivery_date, city_id)
        and surcharge_applies(s.applies_to, slot_slug, category_slugs)
    ]


def compute_preliminary_charges(
    subtotal: Decimal,
    zone: Optional[ZoneInfo],
    slot_charge: Decimal,
    platform_surcharges: Sequence[SurchargeLine] = (),
) -> PreliminaryCharges:
    """
    Delivery charge = base/zone part (possibly free) + slot charge.

    The slot charge is always added, even when base delivery is free.
    """
    return PreliminaryCharges(
        subtotal=subtotal,
        delivery_charge=base_delivery_charge(subtotal, zone) + slot_charge,
        platform_surcharge=sum((line.amount for line in platform_surcharges), ZERO),
        surcharge_breakdown=tuple(platform_surcharges),
    )


class ChargeDataLoader:
    """Reads the zone, slot and surcharge tables the calculator needs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_zone(self, pincode: str) -> Optional[ZoneInfo]:
        """First active zone of an active city listing `pincode`."""
        result = await self.session.execute(
            select(CityZone, City)
            .join(City, City.id == CityZone.city_id)
            .where(CityZone.is_active == True, City.is_active == True)
            .order_by(CityZone.id)
        )
        for zone, city in result.all():
            if pincode in (zone.pincodes or []):
                return ZoneInfo(
                    zone_id=zone.id,
                    zone_name=zone.name,
                    extra_charge=Decimal(zone.extra_charge or 0),
                    city_id=city.id,
                    city_slug=city.slug,
                    base_delivery_charge=Decimal(city.base_delivery_charge or 0),
                    free_delivery_above=(
                        Decimal(city.free_delivery_above) if city.free_delivery_above is not None else None
                    ),
                )
        return None

    async def get_slot(self, slug: str) -> Optional[DeliverySlot]:
        result = await self.session.execute(
            select(DeliverySlot).where(DeliverySlot.slug == slug, DeliverySlot.is_active == True)
        )
        return result.scalar_one_or_none()

    async def slot_charge(self, slot: DeliverySlot, city_id: Optional[int]) -> Decimal:
        """City override when configured, otherwise the slot's base charge."""
        if city_id is not None:
            override = await self.session.scalar(
                select(CityDeliveryConfig.charge_override).where(
                    CityDeliveryConfig.city_id == city_id,
                    CityDeliveryConfig.slot_id == slot.id,
                )
            )
            if override is not None:
                return Decimal(override)
        return Decimal(slot.base_charge or 0)

    async def category_slugs(self, product_ids: Sequence[int]) -> List[str]:
        if not product_ids:
            return []
        result = await self.session.execute(
            select(Category.slug)
            .join(Product, Product.category_id == Category.id)
            .where(Product.id.in_(list(product_ids)))
            .distinct()
        )
        return list(result.scalars().all())

    async def platform_surcharges(
        self,
        delivery_date: date,
        city_id: Optional[int],
        slot_slug: str,
        category_slugs: Iterable[str],
    ) -> List[SurchargeLine]:
        result = await self.session.execute(
            select(PlatformSurcharge)
            .where(
                PlatformSurcharge.is_active == True,
                PlatformSurcharge.start_date <= delivery_date,
                PlatformSurcharge.end_date >= delivery_date,
            )
            .order_by(PlatformSurcharge.id)
        )
        return platform_surcharge_lines(
            result.scalars().all(), delivery_date, city_id, slot_slug, category_slugs
        )

    async def vendor_area_surcharge(self, vendor_id: int, pincode: str) -> Decimal:
        """Surcharge of the vendor's active opt-in to the service area covering `pincode`."""
        amount = await self.session.scalar(
            select(VendorServiceArea.delivery_surcharge)
            .join(ServiceArea, ServiceArea.id == VendorServiceArea.service_area_id)
            .where(
                VendorServiceArea.vendor_id == vendor_id,
                VendorServiceArea.is_active == True,
                ServiceArea.pincode == pincode,
                ServiceArea.is_active == True,
            )
            .order_by(VendorServiceArea.id)
            .limit(1)
        )
        return Decimal(amount) if amount is not None else ZERO
