"""
Tests for coupon validation (service and POST /coupons/validate).

Tests cover:
- Percentage and flat discounts, max_discount cap, rounding
- Rejections: unknown, inactive, expired, usage limit, minimum order,
  per-user limit
- Rejections never touch used_count
"""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.coupon import Coupon
from backend.app.models.order import Order
from backend.app.services.coupons import (
    CouponService,
    CouponServiceError,
    MSG_ALREADY_USED,
    MSG_EXPIRED,
    MSG_INVALID,
    MSG_USAGE_LIMIT,
    calculate_discount,
)


def coupon_row(discount_type="percentage", value="10", max_discount=None):
    return SimpleNamespace(
        discount_type=discount_type,
        discount_value=Decimal(value),
        max_discount=Decimal(max_discount) if max_discount else None,
    )


class TestCalculateDiscount:
    def test_percentage(self):
        assert calculate_discount(coupon_row(value="10"), Decimal("650")) == Decimal("65")

    def test_percentage_capped(self):
        assert calculate_discount(coupon_row(value="20", max_discount="100"), Decimal("1000")) == Decimal("100")

    def test_flat_capped_at_order_total(self):
        assert calculate_discount(coupon_row("flat", "500"), Decimal("300")) == Decimal("300")

    def test_rounded_half_up_to_whole_units(self):
        # 10% of 345 = 34.5
        assert calculate_discount(coupon_row(value="10"), Decimal("345")) == Decimal("35")
        # 10% of 344.9 = 34.49
        assert calculate_discount(coupon_row(value="10"), Decimal("344.9")) == Decimal("34")


@pytest.mark.asyncio
async def test_valid_coupon(test_session: AsyncSession, make_coupon):
    await make_coupon("SAVE10", discount_value="10")

    check = await CouponService(test_session).validate("save10", Decimal("600"))

    assert check.valid is True
    assert check.discount == Decimal("60")
    assert check.message == "Coupon applied! You save ₹60"


@pytest.mark.asyncio
@pytest.mark.parametrize("columns, message", [
    ({"is_active": False}, MSG_INVALID),
    ({"valid_until": datetime.utcnow() - timedelta(hours=1)}, MSG_EXPIRED),
    ({"valid_from": datetime.utcnow() + timedelta(days=1)}, MSG_EXPIRED),
    ({"usage_limit": 5, "used_count": 5}, MSG_USAGE_LIMIT),
])
async def test_rejections_do_not_mutate_used_count(test_session: AsyncSession, make_coupon, columns, message):
    used_before = columns.get("used_count", 0)
    await make_coupon("GIFT50", **columns)

    check = await CouponService(test_session).validate("GIFT50", Decimal("1000"))

    assert check.valid is False
    assert check.discount == Decimal("0")
    assert check.message == message
    test_session.expire_all()
    coupon = (await test_session.execute(select(Coupon).where(Coupon.code == "GIFT50"))).scalar_one()
    assert coupon.used_count == used_before


@pytest.mark.asyncio
async def test_unknown_code(test_session: AsyncSession):
    check = await CouponService(test_session).validate("NOPE", Decimal("100"))
    assert (check.valid, check.message) == (False, MSG_INVALID)


@pytest.mark.asyncio
async def test_blank_code_is_an_error(test_session: AsyncSession):
    with pytest.raises(CouponServiceError):
        await CouponService(test_session).validate("   ", Decimal("100"))


@pytest.mark.asyncio
async def test_minimum_order_amount(test_session: AsyncSession, make_coupon):
    await make_coupon("BIG", min_order_amount="999")

    check = await CouponService(test_session).validate("BIG", Decimal("500"))

    assert check.valid is False
    assert check.message == "Minimum order of ₹999 required for this coupon"


@pytest.mark.asyncio
async def test_per_user_limit_counts_live_orders_only(
    test_session: AsyncSession, make_coupon, test_user, test_address,
):
    await make_coupon("ONCE", per_user_limit=1)
    common = dict(
        address_id=test_address.id, delivery_date=datetime.utcnow().date(), delivery_slot="standard",
        subtotal=Decimal("500"), total=Decimal("500"), coupon_code="ONCE",
    )
    test_session.add(Order(order_number="GC-CHA-10001", user_id=test_user.id, status="CANCELLED", **common))
    await test_session.commit()
    service = CouponService(test_session)

    assert (await service.validate("ONCE", Decimal("500"), user_id=test_user.id)).valid is True

    test_session.add(Order(order_number="GC-CHA-10002", user_id=test_user.id, status="DELIVERED", **common))
    await test_session.commit()

    check = await service.validate("ONCE", Decimal("500"), user_id=test_user.id)
    assert (check.valid, check.message) == (False, MSG_ALREADY_USED)


@pytest.mark.asyncio
async def test_per_user_limit_matches_guest_email_case_insensitively(
    test_session: AsyncSession, make_coupon, test_address,
):
    await make_coupon("ONCE", per_user_limit=1)
    test_session.add(Order(
        order_number="GC-CHA-20001", address_id=test_address.id, delivery_date=datetime.utcnow().date(),
        delivery_slot="standard", subtotal=Decimal("500"), total=Decimal("500"), coupon_code="ONCE",
        guest_email="asha@example.com", status="PENDING",
    ))
    await test_session.commit()

    check = await CouponService(test_session).validate("ONCE", Decimal("500"), guest_email="ASHA@example.com")
    assert check.message == MSG_ALREADY_USED


@pytest.mark.asyncio
async def test_increment_usage(test_session: AsyncSession, make_coupon):
    await make_coupon("SAVE10")
    service = CouponService(test_session)

    assert await service.increment_usage("save10") is True
    assert await service.increment_usage("MISSING") is False
    await test_session.commit()

    test_session.expire_all()
    assert (await service.get_by_code("SAVE10")).used_count == 1


# --- API ---

@pytest.mark.asyncio
async def test_validate_endpoint(client: AsyncClient, make_coupon):
    await make_coupon("FLAT100", discount_type="flat", discount_value="100")

    response = await client.post("/coupons/validate", json={"code": "flat100", "order_total": "750"})

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert Decimal(str(data["discount"])) == Decimal("100")
    assert data["discount_type"] == "flat"


@pytest.mark.asyncio
async def test_validate_endpoint_rejection_is_200(client: AsyncClient, make_coupon):
    await make_coupon("OLD", valid_until=datetime.utcnow() - timedelta(days=1))

    response = await client.post("/coupons/validate", json={"code": "OLD", "order_total": "750"})

    assert response.status_code == 200
    assert response.json()["valid"] is False
    assert response.json()["message"] == MSG_EXPIRED


@pytest.mark.asyncio
async def test_validate_endpoint_blank_code(client: AsyncClient):
    response = await client.post("/coupons/validate", json={"code": "  ", "order_total": "750"})
    assert response.status_code == 400
