"""
Tests for the delivery slot catalog, per-city slot availability, delivery
holidays, the same-day cutoff and the available-dates calendar.
"""
from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.delivery import City, DeliveryHoliday, DeliverySlot, PlatformSurcharge
from backend.app.models.vendor import VendorCapacity
from backend.app.services.availability import MSG_FULL, MSG_PAST_CLOSING, MSG_UNAVAILABLE
from backend.app.services.eligibility import day_of_week
from backend.tests.conftest import MockCacheService, days_ahead


@pytest.mark.asyncio
async def test_slots_are_listed_and_cached(
    client: AsyncClient, test_session: AsyncSession, mock_cache: MockCacheService, test_slots,
):
    response = await client.get("/delivery/slots")

    assert response.status_code == 200
    assert [s["slug"] for s in response.json()] == ["express", "standard", "midnight"]
    assert await mock_cache.get_delivery_slots() is not None

    test_session.add(DeliverySlot(name="Early", slug="early", start_time="07:00", end_time="09:00"))
    await test_session.commit()

    cached = await client.get("/delivery/slots")
    assert [s["slug"] for s in cached.json()] == ["express", "standard", "midnight"]

    await mock_cache.invalidate_delivery_slots()
    fresh = await client.get("/delivery/slots")
    assert [s["slug"] for s in fresh.json()] == ["express", "early", "standard", "midnight"]


@pytest.mark.asyncio
async def test_availability_per_slot(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots, make_vendor, test_product,
):
    day = days_ahead(3)
    vendor = await make_vendor(products=[test_product], slots=["standard", "express"])
    test_session.add(VendorCapacity(
        vendor_id=vendor.id, date=day, slot_id=test_slots["express"].id, max_orders=10, booked_orders=10,
    ))
    await test_session.commit()

    response = await client.get("/delivery/availability", params={
        "city_id": test_city.id, "date": day.isoformat(), "product_ids": str(test_product.id),
    })

    assert response.status_code == 200
    data = response.json()
    assert data["delivery_date"] == day.isoformat()
    slots = {s["slug"]: s for s in data["slots"]}
    assert list(slots) == ["express", "standard", "midnight"]

    assert slots["standard"]["is_available"] is True
    assert slots["standard"]["eligible_vendors"] == 1
    assert slots["standard"]["reason"] is None

    assert slots["express"]["is_available"] is False
    assert slots["express"]["is_full"] is True
    assert slots["express"]["reason"] == MSG_FULL

    assert slots["midnight"]["is_available"] is False
    assert slots["midnight"]["is_full"] is False
    assert slots["midnight"]["reason"] == MSG_UNAVAILABLE


@pytest.mark.asyncio
async def test_slot_price_includes_matching_surcharges(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots,
):
    day = days_ahead(2)
    test_session.add(PlatformSurcharge(
        name="Midnight rush", amount=Decimal("50"), applies_to="slot:midnight",
        start_date=day, end_date=day, is_active=True,
    ))
    await test_session.commit()

    response = await client.get("/delivery/availability", params={"city_id": test_city.id, "date": day.isoformat()})

    prices = {s["slug"]: Decimal(str(s["price"])) for s in response.json()["slots"]}
    assert prices == {"express": Decimal("249"), "standard": Decimal("0"), "midnight": Decimal("249")}


@pytest.mark.asyncio
async def test_inactive_or_unknown_city(client: AsyncClient, test_session: AsyncSession, test_slots):
    dormant = City(name="Mohali", slug="mohali", is_active=False)
    test_session.add(dormant)
    await test_session.commit()

    for city_id in (dormant.id, 424242):
        response = await client.get("/delivery/availability", params={
            "city_id": city_id, "date": days_ahead(2).isoformat(),
        })
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_past_date(client: AsyncClient, test_city):
    response = await client.get("/delivery/availability", params={
        "city_id": test_city.id, "date": days_ahead(-1).isoformat(),
    })
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_malformed_product_ids(client: AsyncClient, test_city):
    response = await client.get("/delivery/availability", params={
        "city_id": test_city.id, "date": days_ahead(2).isoformat(), "product_ids": "1,cake",
    })
    assert response.status_code == 400


def freeze_business_clock(monkeypatch, moment: datetime):
    monkeypatch.setattr("backend.app.services.availability.business_now", lambda: moment)


@pytest.mark.asyncio
async def test_full_block_holiday_empties_the_day(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots,
):
    day = days_ahead(4)
    test_session.add(DeliveryHoliday(
        date=day, mode="FULL_BLOCK", reason="Diwali", customer_message="Closed for Diwali",
    ))
    await test_session.commit()

    response = await client.get("/delivery/availability", params={"city_id": test_city.id, "date": day.isoformat()})

    assert response.status_code == 200
    data = response.json()
    assert data["slots"] == []
    assert data["fully_blocked"] is True
    assert data["holiday_reason"] == "Closed for Diwali"


@pytest.mark.asyncio
async def test_standard_only_holiday_keeps_the_standard_slot(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots,
):
    day = days_ahead(4)
    test_session.add(DeliveryHoliday(date=day, mode="STANDARD_ONLY", reason="Holi"))
    await test_session.commit()

    response = await client.get("/delivery/availability", params={"city_id": test_city.id, "date": day.isoformat()})

    data = response.json()
    assert [s["slug"] for s in data["slots"]] == ["standard"]
    assert data["fully_blocked"] is False
    assert data["holiday_reason"] == "Holi"


@pytest.mark.asyncio
async def test_custom_holiday_blocks_and_reprices_slots(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots,
):
    day = days_ahead(4)
    test_session.add_all([
        DeliveryHoliday(
            date=day, mode="CUSTOM", reason="Valentine's Day",
            slot_overrides=[
                {"slug": "midnight", "blocked": True, "price_override": None},
                {"slug": "express", "blocked": False, "price_override": 399},
            ],
        ),
        PlatformSurcharge(
            name="Express rush", amount=Decimal("50"), applies_to="slot:express",
            start_date=day, end_date=day, is_active=True,
        ),
    ])
    await test_session.commit()

    response = await client.get("/delivery/availability", params={"city_id": test_city.id, "date": day.isoformat()})

    prices = {s["slug"]: Decimal(str(s["price"])) for s in response.json()["slots"]}
    assert prices == {"express": Decimal("399"), "standard": Decimal("0")}


@pytest.mark.asyncio
async def test_city_holiday_overrides_platform_holiday(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots,
):
    day = days_ahead(4)
    test_session.add_all([
        DeliveryHoliday(date=day, mode="FULL_BLOCK", reason="National holiday"),
        DeliveryHoliday(date=day, city_id=test_city.id, mode="STANDARD_ONLY", reason="Open locally"),
    ])
    await test_session.commit()

    response = await client.get("/delivery/availability", params={"city_id": test_city.id, "date": day.isoformat()})

    data = response.json()
    assert data["fully_blocked"] is False
    assert [s["slug"] for s in data["slots"]] == ["standard"]
    assert data["holiday_reason"] == "Open locally"


@pytest.mark.asyncio
async def test_same_day_slots_close_when_preparation_runs_past_closing(
    client: AsyncClient, test_city, test_slots, make_vendor, test_product, monkeypatch,
):
    day = days_ahead(1)
    await make_vendor(products=[test_product], preparation_time=120)
    params = {"city_id": test_city.id, "date": day.isoformat(), "product_ids": str(test_product.id)}

    freeze_business_clock(monkeypatch, datetime.combine(day, time(18, 0)))
    early = {s["slug"]: s for s in (await client.get("/delivery/availability", params=params)).json()["slots"]}
    assert early["standard"]["is_available"] is True

    # 19:30 + 2h of preparation passes the 21:00 close
    freeze_business_clock(monkeypatch, datetime.combine(day, time(19, 30)))
    late = {s["slug"]: s for s in (await client.get("/delivery/availability", params=params)).json()["slots"]}
    assert late["standard"]["is_available"] is False
    assert late["standard"]["is_full"] is False
    assert late["standard"]["eligible_vendors"] == 0
    assert late["standard"]["reason"] == MSG_PAST_CLOSING


@pytest.mark.asyncio
async def test_available_dates_skip_holidays_and_closed_days(
    client: AsyncClient, test_session: AsyncSession, test_city, test_slots, make_vendor, test_product, monkeypatch,
):
    base = days_ahead(1)
    freeze_business_clock(monkeypatch, datetime.combine(base, time(10, 0)))
    await make_vendor(products=[test_product], closed_days=[day_of_week(base + timedelta(days=2))])
    test_session.add_all([
        DeliveryHoliday(date=base + timedelta(days=1), mode="FULL_BLOCK", reason="Diwali"),
        DeliveryHoliday(
            date=base + timedelta(days=3), city_id=test_city.id, mode="CUSTOM", reason="Strike",
            slot_overrides=[{"slug": slug, "blocked": True} for slug in ("standard", "midnight", "express")],
        ),
        DeliveryHoliday(date=base + timedelta(days=4), mode="STANDARD_ONLY", reason="Holi"),
    ])
    await test_session.commit()

    response = await client.get("/delivery/available-dates", params={
        "city_id": test_city.id, "product_ids": str(test_product.id), "days": 5,
    })

    assert response.status_code == 200
    expected = [base, base + timedelta(days=4), base + timedelta(days=5)]
    assert response.json()["available_dates"] == [d.isoformat() for d in expected]


@pytest.mark.asyncio
async def test_available_dates_need_a_vendor_stocking_every_product(
    client: AsyncClient, test_city, test_slots, make_vendor, test_product, test_flower_product,
):
    await make_vendor(products=[test_product])

    stocked = await client.get("/delivery/available-dates", params={
        "city_id": test_city.id, "product_ids": str(test_product.id), "days": 3,
    })
    assert len(stocked.json()["available_dates"]) == 4

    missing = await client.get("/delivery/available-dates", params={
        "city_id": test_city.id, "product_ids": f"{test_product.id},{test_flower_product.id}",
    })
    assert missing.json()["available_dates"] == []

    unbounded = await client.get("/delivery/available-dates", params={"city_id": test_city.id, "days": 365})
    assert unbounded.status_code == 422
