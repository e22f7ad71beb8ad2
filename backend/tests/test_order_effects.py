"""
Tests for post-creation effects and the background runner.

A failing or slow effect is logged and counted, and the effects after it
still run. Nothing here can touch the order row itself.
"""
import asyncio
import logging
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import select

from backend.app.models.order import Order, OrderStatusHistory
from backend.app.services.order_effects import (
    BackgroundEffectRunner,
    PostOrderEffect,
    commission_split,
    status_history_effect,
)
from backend.tests.conftest import days_ahead


def effect_count(effect: str, outcome: str) -> float:
    return REGISTRY.get_sample_value(
        "post_order_effects_total", {"effect": effect, "outcome": outcome}
    ) or 0.0


@pytest.fixture
async def placed_order(test_session, test_address) -> Order:
    order = Order(
        order_number="GC-CHA-54321", address_id=test_address.id, user_id=test_address.user_id,
        delivery_date=days_ahead(2), delivery_slot="standard",
        subtotal=Decimal("300"), total=Decimal("349"),
    )
    test_session.add(order)
    await test_session.commit()
    return order


def test_commission_split():
    assert commission_split(Decimal("300"), Decimal("12")) == (Decimal("36.00"), Decimal("264.00"))
    assert commission_split(Decimal("333.33"), Decimal("12.5")) == (Decimal("41.67"), Decimal("291.66"))


@pytest.mark.asyncio
async def test_failure_is_logged_and_later_effects_still_run(session_factory, test_session, placed_order, caplog):
    async def explode(session):
        raise RuntimeError("ledger offline")

    runner = BackgroundEffectRunner(session_factory, timeout=5.0)
    errors_before = effect_count("explode", "error")

    with caplog.at_level(logging.WARNING):
        runner.submit(placed_order.order_number, [
            PostOrderEffect("explode", explode),
            status_history_effect(placed_order.id, "Order placed"),
        ])
        await runner.drain()

    assert runner.pending == 0
    assert effect_count("explode", "error") == errors_before + 1
    assert any("Post-order effect failed" in r.getMessage() for r in caplog.records)
    notes = (await test_session.execute(
        select(OrderStatusHistory.note).where(OrderStatusHistory.order_id == placed_order.id)
    )).scalars().all()
    assert notes == ["Order placed"]


@pytest.mark.asyncio
async def test_slow_effect_times_out(session_factory, test_session, placed_order, caplog):
    async def stall(session):
        await asyncio.sleep(10)

    runner = BackgroundEffectRunner(session_factory, timeout=0.05)
    timeouts_before = effect_count("stall", "timeout")

    with caplog.at_level(logging.WARNING):
        runner.submit(placed_order.order_number, [
            PostOrderEffect("stall", stall),
            status_history_effect(placed_order.id, "Order placed"),
        ])
        await runner.drain()

    assert effect_count("stall", "timeout") == timeouts_before + 1
    assert any("timed out" in r.getMessage() for r in caplog.records)
    total = await test_session.scalar(select(Order.total).where(Order.id == placed_order.id))
    assert total == Decimal("349.00")


@pytest.mark.asyncio
async def test_failed_effect_rolls_back_its_own_writes(session_factory, test_session, placed_order):
    async def half_done(session):
        session.add(OrderStatusHistory(order_id=placed_order.id, status="PENDING", note="half"))
        await session.flush()
        raise RuntimeError("boom")

    runner = BackgroundEffectRunner(session_factory, timeout=5.0)
    runner.submit(placed_order.order_number, [PostOrderEffect("half_done", half_done)])
    await runner.drain()

    notes = (await test_session.execute(
        select(OrderStatusHistory.note).where(OrderStatusHistory.order_id == placed_order.id)
    )).scalars().all()
    assert notes == []


@pytest.mark.asyncio
async def test_nothing_to_submit(session_factory):
    runner = BackgroundEffectRunner(session_factory)
    assert runner.submit("GC-CHA-00000", []) is None
    assert runner.pending == 0
