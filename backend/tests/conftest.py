"""
Test fixtures for GiftCart backend tests.

Provides:
- A per-test SQLite file database (aiosqlite, NullPool) so request sessions
  and background post-order effects each get their own connection
- Async test client with the session, cache and effect runner overridden
- Factories for cities, zones, slots, products, vendors, users and coupons
"""
# IMPORTANT: Set environment variables BEFORE any other imports
import os

# DB settings required by Settings validation (tests use SQLite, these are not actually used)
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("DB_NAME", "test")
# Development mode for tests (disables ALLOWED_ORIGINS requirement)
os.environ.setdefault("ENVIRONMENT", "development")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["COD_FEE"] = "25"

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional, Sequence

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool

from backend.app.core.base import Base
from backend.app.main import app
from backend.app.api.deps import get_session, get_cache, get_effect_runner
from backend.app.services.order_effects import BackgroundEffectRunner
from backend.app.models.category import Category
from backend.app.models.coupon import Coupon
from backend.app.models.delivery import City, CityZone, DeliverySlot, CityDeliveryConfig
from backend.app.models.product import Product
from backend.app.models.user import User, Address
from backend.app.models.vendor import (
    Vendor,
    VendorPincode,
    VendorProduct,
    VendorSlot,
    VendorWorkingHours,
)

CORE_PINCODE = "160017"
OUTSIDE_PINCODE = "999999"


class MockCacheService:
    """Mock Redis cache for testing without actual Redis."""

    KEY_DELIVERY_SLOTS = "delivery:slots:active"

    def __init__(self):
        self._cache = {}

    async def get(self, key: str):
        return self._cache.get(key)

    async def set(self, key: str, value, ttl: int = 300):
        self._cache[key] = value

    async def delete(self, key: str):
        self._cache.pop(key, None)

    async def get_delivery_slots(self):
        return self._cache.get(self.KEY_DELIVERY_SLOTS)

    async def set_delivery_slots(self, slots):
        self._cache[self.KEY_DELIVERY_SLOTS] = slots

    async def invalidate_delivery_slots(self):
        self._cache.pop(self.KEY_DELIVERY_SLOTS, None)


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh SQLite file per test with every table created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by fixtures and assertions (separate from request sessions)."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def effect_runner(session_factory) -> BackgroundEffectRunner:
    return BackgroundEffectRunner(session_factory, timeout=5.0)


@pytest.fixture
async def mock_cache() -> MockCacheService:
    """Provide mock cache service for testing."""
    return MockCacheService()


@pytest.fixture
async def client(
    session_factory,
    mock_cache: MockCacheService,
    effect_runner: BackgroundEffectRunner,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing API endpoints.
    Overrides database, cache and post-order effect runner dependencies.

    Note: each API call gets a fresh session so request transactions never
    collide with `test_session`.
    """
    async def override_get_session():
        async with session_factory() as session:
            yield session

    async def override_get_cache():
        yield mock_cache

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_cache] = override_get_cache
    app.dependency_overrides[get_effect_runner] = lambda: effect_runner

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    await effect_runner.drain()
    app.dependency_overrides.clear()


def days_ahead(n: int) -> date:
    return date.today() + timedelta(days=n)


# --- Test Data Factories ---

@pytest.fixture
async def test_city(test_session: AsyncSession) -> City:
    """Chandigarh: base charge 49, free delivery from 499."""
    city = City(
        name="Chandigarh",
        slug="chandigarh",
        state="Chandigarh",
        base_delivery_charge=Decimal("49"),
        free_delivery_above=Decimal("499"),
        is_active=True,
    )
    test_session.add(city)
    await test_session.commit()
    await test_session.refresh(city)
    return city


@pytest.fixture
async def test_zone(test_session: AsyncSession, test_city: City) -> CityZone:
    """Core zone, sectors 15-25, no extra charge."""
    zone = CityZone(
        city_id=test_city.id,
        name="Core (Sectors 15-25)",
        pincodes=[f"160{i:03d}" for i in range(15, 26)],
        extra_charge=Decimal("0"),
        is_active=True,
    )
    test_session.add(zone)
    await test_session.commit()
    await test_session.refresh(zone)
    return zone


@pytest.fixture
async def test_slots(test_session: AsyncSession, test_city: City) -> dict:
    """standard (0), midnight (199) and express (249), all enabled for the city."""
    slots = {
        "standard": DeliverySlot(name="Standard", slug="standard", start_time="09:00", end_time="21:00", base_charge=Decimal("0")),
        "midnight": DeliverySlot(name="Midnight", slug="midnight", start_time="23:00", end_time="23:59", base_charge=Decimal("199")),
        "express": DeliverySlot(name="Express", slug="express", start_time="00:00", end_time="23:59", base_charge=Decimal("249")),
    }
    test_session.add_all(slots.values())
    await test_session.flush()
    for slot in slots.values():
        test_session.add(CityDeliveryConfig(city_id=test_city.id, slot_id=slot.id, is_available=True))
    await test_session.commit()
    return slots


@pytest.fixture
async def test_categories(test_session: AsyncSession) -> dict:
    categories = {
        "cakes": Category(name="Cakes", slug="cakes", sort_order=0, is_active=True),
        "flowers": Category(name="Flowers", slug="flowers", sort_order=1, is_active=True),
    }
    test_session.add_all(categories.values())
    await test_session.commit()
    return categories


@pytest.fixture
async def test_product(test_session: AsyncSession, test_categories: dict) -> Product:
    """A cake at 300 with the default 2h lead time."""
    product = Product(
        name="Chocolate Truffle Cake",
        slug="chocolate-truffle-cake",
        category_id=test_categories["cakes"].id,
        base_price=Decimal("300"),
        min_lead_time_hours=2,
        is_active=True,
    )
    test_session.add(product)
    await test_session.commit()
    await test_session.refresh(product)
    return product


@pytest.fixture
async def test_flower_product(test_session: AsyncSession, test_categories: dict) -> Product:
    product = Product(
        name="Red Roses Bouquet",
        slug="red-roses-bouquet",
        category_id=test_categories["flowers"].id,
        base_price=Decimal("450"),
        min_lead_time_hours=2,
        is_active=True,
    )
    test_session.add(product)
    await test_session.commit()
    await test_session.refresh(product)
    return product


@pytest.fixture
def make_vendor(test_session: AsyncSession, test_city: City, test_slots: dict):
    """
    Factory for an approved, online vendor open every day, enrolled in every
    test slot and serving CORE_PINCODE. Keyword arguments override columns.
    """
    async def _make(
        name: str = "Sweet Delights",
        rating: str = "4.5",
        pincodes: Sequence[str] = (CORE_PINCODE,),
        pincode_charge: str = "0",
        products: Sequence[Product] = (),
        preparation_time: int = 120,
        closed_days: Sequence[int] = (),
        slots: Optional[Sequence[str]] = None,
        **columns,
    ) -> Vendor:
        vendor = Vendor(
            business_name=name,
            city_id=columns.pop("city_id", test_city.id),
            status=columns.pop("status", "APPROVED"),
            is_online=columns.pop("is_online", True),
            rating=Decimal(rating),
            commission_rate=columns.pop("commission_rate", Decimal("12")),
            **columns,
        )
        test_session.add(vendor)
        await test_session.flush()

        for pincode in pincodes:
            test_session.add(VendorPincode(
                vendor_id=vendor.id, pincode=pincode,
                delivery_charge=Decimal(pincode_charge), is_active=True,
            ))
        for day in range(7):
            test_session.add(VendorWorkingHours(
                vendor_id=vendor.id, day_of_week=day, is_closed=day in closed_days,
            ))
        for slug in (slots if slots is not None else test_slots):
            test_session.add(VendorSlot(vendor_id=vendor.id, slot_id=test_slots[slug].id, is_enabled=True))
        for product in products:
            test_session.add(VendorProduct(
                vendor_id=vendor.id, product_id=product.id,
                preparation_time=preparation_time, is_available=True,
            ))
        await test_session.commit()
        await test_session.refresh(vendor)
        return vendor

    return _make


@pytest.fixture
async def test_user(test_session: AsyncSession) -> User:
    user = User(name="Test User", email="user@example.com", phone="9876543210")
    test_session.add(user)
    await test_session.commit()
    await test_session.refresh(user)
    return user


@pytest.fixture
async def test_address(test_session: AsyncSession, test_user: User) -> Address:
    address = Address(
        user_id=test_user.id,
        name="Test User",
        phone="9876543210",
        address="House 12, Sector 17",
        city="Chandigarh",
        pincode=CORE_PINCODE,
    )
    test_session.add(address)
    await test_session.commit()
    await test_session.refresh(address)
    return address


@pytest.fixture
def make_coupon(test_session: AsyncSession):
    async def _make(code: str = "SAVE10", **columns) -> Coupon:
        now = datetime.utcnow()
        coupon = Coupon(
            code=code,
            discount_type=columns.pop("discount_type", "percentage"),
            discount_value=Decimal(columns.pop("discount_value", "10")),
            valid_from=columns.pop("valid_from", now - timedelta(days=1)),
            valid_until=columns.pop("valid_until", now + timedelta(days=30)),
            is_active=columns.pop("is_active", True),
            used_count=columns.pop("used_count", 0),
            min_order_amount=Decimal(columns.pop("min_order_amount", "0")),
            per_user_limit=columns.pop("per_user_limit", 0),
            **columns,
        )
        test_session.add(coupon)
        await test_session.commit()
        await test_session.refresh(coupon)
        return coupon

    return _make


def guest_order_payload(product: Product, **overrides) -> dict:
    """Minimal valid guest checkout body for `product`, delivered in three days."""
    payload = {
        "guest_name": "Asha Guest",
        "guest_email": "Asha@Example.com",
        "guest_phone": "9000000001",
        "delivery_address": {
            "name": "Asha Guest",
            "phone": "9000000001",
            "address": "House 4, Sector 17",
            "city": "Chandigarh",
            "pincode": CORE_PINCODE,
        },
        "cart_items": [{"product_id": product.id, "quantity": 1}],
        "delivery_date": days_ahead(3).isoformat(),
        "delivery_slot": "standard",
    }
    payload.update(overrides)
    return payload
