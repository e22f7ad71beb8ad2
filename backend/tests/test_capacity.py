"""
Tests for capacity reservation against the database.

Tests cover:
- Lazy creation of a counter row with booked_orders=1
- Sequential reservations stop exactly at max_orders
- Reservations roll back with the surrounding transaction
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.vendor import VendorCapacity
from backend.app.services.capacity import CapacityStore
from backend.tests.conftest import days_ahead


@pytest.mark.asyncio
async def test_first_reservation_creates_row(test_session: AsyncSession, make_vendor, test_slots):
    vendor = await make_vendor()
    store = CapacityStore(test_session, default_max_orders=10)
    day = days_ahead(2)

    assert await store.get_counter(vendor.id, day, test_slots["express"].id) is None
    assert await store.reserve_capacity(vendor.id, day, test_slots["express"].id) is True
    await test_session.commit()

    assert await store.get_counter(vendor.id, day, test_slots["express"].id) == (10, 1)


@pytest.mark.asyncio
async def test_default_capacity_comes_from_settings(test_session: AsyncSession, make_vendor, test_slots):
    vendor = await make_vendor()
    store = CapacityStore(test_session)
    assert store.default_max_orders == 10

    await store.reserve_capacity(vendor.id, days_ahead(2), test_slots["standard"].id)
    max_orders, booked = await store.get_counter(vendor.id, days_ahead(2), test_slots["standard"].id)
    assert (max_orders, booked) == (10, 1)


@pytest.mark.asyncio
async def test_sequential_reservations_never_exceed_max(test_session: AsyncSession, make_vendor, test_slots):
    vendor = await make_vendor()
    day, slot_id = days_ahead(2), test_slots["midnight"].id
    test_session.add(VendorCapacity(vendor_id=vendor.id, date=day, slot_id=slot_id, max_orders=3, booked_orders=0))
    await test_session.commit()
    store = CapacityStore(test_session)

    results = []
    for expected_booked in (1, 2, 3):
        results.append(await store.reserve_capacity(vendor.id, day, slot_id))
        assert await store.get_counter(vendor.id, day, slot_id) == (3, expected_booked)

    results.append(await store.reserve_capacity(vendor.id, day, slot_id))
    results.append(await store.reserve_capacity(vendor.id, day, slot_id))
    await test_session.commit()

    assert results == [True, True, True, False, False]
    assert await store.get_counter(vendor.id, day, slot_id) == (3, 3)


@pytest.mark.asyncio
async def test_full_row_is_not_recreated(test_session: AsyncSession, make_vendor, test_slots):
    vendor = await make_vendor()
    day, slot_id = days_ahead(2), test_slots["express"].id
    test_session.add(VendorCapacity(vendor_id=vendor.id, date=day, slot_id=slot_id, max_orders=10, booked_orders=10))
    await test_session.commit()

    assert await CapacityStore(test_session).reserve_capacity(vendor.id, day, slot_id) is False
    assert await CapacityStore(test_session).get_counter(vendor.id, day, slot_id) == (10, 10)


@pytest.mark.asyncio
async def test_reservation_rolls_back_with_transaction(session_factory, make_vendor, test_slots):
    vendor = await make_vendor()
    day, slot_id = days_ahead(2), test_slots["standard"].id

    async with session_factory() as session:
        assert await CapacityStore(session).reserve_capacity(vendor.id, day, slot_id)
        await session.rollback()

    async with session_factory() as session:
        assert await CapacityStore(session).get_counter(vendor.id, day, slot_id) is None
