#!/usr/bin/env python3
"""
Seed the delivery catalog: cities, Chandigarh zones, platform slots,
categories and one demo vendor serving the core zone.

Safe to re-run: rows are matched by slug (or natural key) and left alone
when they already exist.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --no-vendor
"""
import argparse
import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Project root on PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy import select

from backend.app.core.database import async_session
from backend.app.core.constants import VENDOR_APPROVED
from backend.app.models.category import Category
from backend.app.models.delivery import City, CityZone, DeliverySlot, CityDeliveryConfig
from backend.app.models.product import Product
from backend.app.models.vendor import (
    Vendor,
    VendorPincode,
    VendorProduct,
    VendorSlot,
    VendorWorkingHours,
)
from backend.app.services.cache import CacheService

CITIES = [
    {"name": "Chandigarh", "slug": "chandigarh", "state": "Chandigarh"},
    {"name": "Mohali", "slug": "mohali", "state": "Punjab"},
    {"name": "Panchkula", "slug": "panchkula", "state": "Haryana"},
]
BASE_DELIVERY_CHARGE = Decimal("49")
FREE_DELIVERY_ABOVE = Decimal("499")

SLOTS = [
    {"name": "Standard", "slug": "standard", "start_time": "09:00", "end_time": "21:00", "base_charge": Decimal("0")},
    {"name": "Fixed Slot", "slug": "fixed-slot", "start_time": "10:00", "end_time": "12:00", "base_charge": Decimal("50")},
    {"name": "Midnight", "slug": "midnight", "start_time": "23:00", "end_time": "23:59", "base_charge": Decimal("199")},
    {"name": "Early Morning", "slug": "early-morning", "start_time": "06:00", "end_time": "08:00", "base_charge": Decimal("149")},
    {"name": "Express", "slug": "express", "start_time": "00:00", "end_time": "23:59", "base_charge": Decimal("249")},
]

CATEGORIES = [
    ("Cakes", "cakes"),
    ("Flowers", "flowers"),
    ("Combos", "combos"),
    ("Plants", "plants"),
    ("Gifts", "gifts"),
]

PRODUCTS = [
    {"name": "Chocolate Truffle Cake", "slug": "chocolate-truffle-cake", "category": "cakes", "base_price": Decimal("599"), "min_lead_time_hours": 4},
    {"name": "Red Velvet Cake", "slug": "red-velvet-cake", "category": "cakes", "base_price": Decimal("699"), "min_lead_time_hours": 4},
    {"name": "Photo Cake", "slug": "photo-cake", "category": "cakes", "base_price": Decimal("899"), "min_lead_time_hours": 6},
    {"name": "Red Roses Bouquet", "slug": "red-roses-bouquet", "category": "flowers", "base_price": Decimal("499"), "min_lead_time_hours": 2},
]


def pincode_range(prefix: str, start: int, end: int) -> list[str]:
    return [f"{prefix}{i:03d}" for i in range(start, end + 1)]


CORE_PINCODES = pincode_range("160", 15, 25)
ZONES = [
    ("Core (Sectors 15-25)", CORE_PINCODES, Decimal("0")),
    ("Extended (Sectors 1-14, 26-40)", pincode_range("160", 1, 14) + pincode_range("160", 26, 40), Decimal("30")),
    ("Outskirts (Mohali, Panchkula)", pincode_range("140", 301, 320) + pincode_range("134", 101, 120), Decimal("60")),
]


async def _by_slug(session, model, slug):
    result = await session.execute(select(model).where(model.slug == slug))
    return result.scalar_one_or_none()


async def seed_cities(session) -> dict:
    cities = {}
    for data in CITIES:
        city = await _by_slug(session, City, data["slug"])
        if city is None:
            city = City(
                **data,
                base_delivery_charge=BASE_DELIVERY_CHARGE,
                free_delivery_above=FREE_DELIVERY_ABOVE,
            )
            session.add(city)
            await session.flush()
            print(f"  + city {city.name}")
        cities[city.slug] = city
    return cities


async def seed_zones(session, city: City) -> None:
    result = await session.execute(select(CityZone.name).where(CityZone.city_id == city.id))
    existing = set(result.scalars().all())
    for name, pincodes, extra in ZONES:
        if name in existing:
            continue
        session.add(CityZone(city_id=city.id, name=name, pincodes=pincodes, extra_charge=extra))
        print(f"  + zone {name} ({len(pincodes)} pincodes, +{extra})")
    await session.flush()


async def seed_slots(session, city: City) -> list[DeliverySlot]:
    slots = []
    for data in SLOTS:
        slot = await _by_slug(session, DeliverySlot, data["slug"])
        if slot is None:
            slot = DeliverySlot(**data)
            session.add(slot)
            await session.flush()
            print(f"  + slot {slot.slug}")
        slots.append(slot)

        config = await session.execute(
            select(CityDeliveryConfig).where(
                CityDeliveryConfig.city_id == city.id,
                CityDeliveryConfig.slot_id == slot.id,
            )
        )
        if config.scalar_one_or_none() is None:
            session.add(CityDeliveryConfig(city_id=city.id, slot_id=slot.id, is_available=True))
    await session.flush()
    return slots


async def seed_categories(session) -> dict:
    categories = {}
    for position, (name, slug) in enumerate(CATEGORIES):
        category = await _by_slug(session, Category, slug)
        if category is None:
            category = Category(name=name, slug=slug, sort_order=position, is_active=True)
            session.add(category)
            await session.flush()
            print(f"  + category {slug}")
        categories[slug] = category
    return categories


async def seed_products(session, categories: dict) -> list[Product]:
    products = []
    for data in PRODUCTS:
        product = await _by_slug(session, Product, data["slug"])
        if product is None:
            fields = dict(data)
            category = categories[fields.pop("category")]
            product = Product(**fields, category_id=category.id)
            session.add(product)
            await session.flush()
            print(f"  + product {product.slug}")
        products.append(product)
    return products


async def seed_demo_vendor(session, city: City, slots: list[DeliverySlot], products: list[Product]) -> None:
    result = await session.execute(
        select(Vendor).where(Vendor.business_name == "Sweet Delights Bakery")
    )
    if result.scalar_one_or_none() is not None:
        return

    vendor = Vendor(
        business_name="Sweet Delights Bakery",
        city_id=city.id,
        status=VENDOR_APPROVED,
        is_online=True,
        rating=Decimal("4.5"),
        commission_rate=Decimal("12"),
    )
    session.add(vendor)
    await session.flush()

    for pincode in CORE_PINCODES:
        session.add(VendorPincode(vendor_id=vendor.id, pincode=pincode))
    # 0=Sunday; closed on Mondays
    for day in range(7):
        session.add(VendorWorkingHours(
            vendor_id=vendor.id, day_of_week=day,
            open_time="08:00", close_time="22:00", is_closed=(day == 1),
        ))
    for slot in slots:
        session.add(VendorSlot(vendor_id=vendor.id, slot_id=slot.id))
    for product in products:
        session.add(VendorProduct(vendor_id=vendor.id, product_id=product.id, preparation_time=120))
    await session.flush()
    print(f"  + vendor {vendor.business_name} ({len(CORE_PINCODES)} pincodes)")


async def seed(with_vendor: bool = True) -> None:
    async with async_session() as session:
        print("Seeding catalog...")
        cities = await seed_cities(session)
        chandigarh = cities["chandigarh"]
        await seed_zones(session, chandigarh)
        slots = await seed_slots(session, chandigarh)
        categories = await seed_categories(session)
        products = await seed_products(session, categories)
        if with_vendor:
            await seed_demo_vendor(session, chandigarh, slots, products)
        await session.commit()

    # The slot list is served from Redis; drop the stale copy
    try:
        redis = await CacheService.get_redis()
        await CacheService(redis).invalidate_delivery_slots()
    finally:
        await CacheService.close()
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Seed cities, zones, delivery slots and categories")
    parser.add_argument(
        "--no-vendor",
        action="store_true",
        help="Skip the demo vendor and its products",
    )
    args = parser.parse_args()
    asyncio.run(seed(with_vendor=not args.no_vendor))


if __name__ == "__main__":
    main()
