# backend/app/services/coupons.py
"""
Coupon service - validation, discount calculation and usage accounting.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Dict, Any

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import (
    COUPON_EXCLUDED_ORDER_STATUSES,
    DISCOUNT_PERCENTAGE,
    ONE_UNIT,
    PERCENT_BASE,
    ZERO,
)
from backend.app.core.exceptions import ServiceError
from backend.app.models.coupon import Coupon
from backend.app.models.order import Order


class CouponServiceError(ServiceError):
    """Base exception for coupon service errors."""


MSG_INVALID = "Invalid coupon code"
MSG_EXPIRED = "This coupon has expired"
MSG_USAGE_LIMIT = "This coupon has reached its usage limit"
MSG_ALREADY_USED = "You have already used this coupon"


@dataclass(frozen=True)
class CouponCheck:
    """Outcome of validating a code. A rejected coupon has discount 0."""
    valid: bool
    message: str
    discount: Decimal = ZERO
    coupon: Optional[Coupon] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "valid": self.valid,
            "discount": float(self.discount),
            "message": self.message,
        }
        if self.coupon is not None and self.valid:
            data["discount_type"] = self.coupon.discount_type
            data["discount_value"] = float(self.coupon.discount_value)
            data["max_discount"] = float(self.coupon.max_discount) if self.coupon.max_discount else None
        return data


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def calculate_discount(coupon: Coupon, order_total: Decimal) -> Decimal:
    """
    Percentage coupons are capped by max_discount; flat coupons give their
    value. The result never exceeds the order total and is rounded to whole
    currency units.
    """
    value = Decimal(coupon.discount_value)
    if coupon.discount_type == DISCOUNT_PERCENTAGE:
        discount = order_total * value / PERCENT_BASE
        if coupon.max_discount:
            discount = min(discount, Decimal(coupon.max_discount))
    else:
        discount = value
    discount = min(discount, order_total)
    return max(discount, ZERO).quantize(ONE_UNIT, rounding=ROUND_HALF_UP)


class CouponService:
    """Service class for coupon operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_code(self, code: str) -> Optional[Coupon]:
        result = await self.session.execute(
            select(Coupon).where(Coupon.code == normalize_code(code))
        )
        return result.scalar_one_or_none()

    async def count_uses(
        self,
        code: str,
        user_id: Optional[int] = None,
        guest_email: Optional[str] = None,
    ) -> int:
        """Orders by this user (or guest email) that used `code`, ignoring cancelled/refunded ones."""
        query = select(func.count(Order.id)).where(
            Order.coupon_code == code,
            Order.status.notin_(COUPON_EXCLUDED_ORDER_STATUSES),
        )
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        elif guest_email:
            query = query.where(func.lower(Order.guest_email) == guest_email.strip().lower())
        else:
            return 0
        return await self.session.scalar(query) or 0

    async def validate(
        self,
        code: str,
        order_total: Decimal,
        user_id: Optional[int] = None,
        guest_email: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CouponCheck:
        """
        Check a code against an order total.

        Checks run in order: exists and active, validity window, global usage
        limit, minimum order amount, per-user limit. An unknown or unusable
        code is not an error; the result carries the reason instead.
        """
        if not normalize_code(code):
            raise CouponServiceError("Coupon code is required")
        now = now or datetime.utcnow()
        order_total = Decimal(order_total)
        coupon = await self.get_by_code(code)

        if not coupon or not coupon.is_active:
            return CouponCheck(valid=False, message=MSG_INVALID)
        if now < coupon.valid_from or now > coupon.valid_until:
            return CouponCheck(valid=False, message=MSG_EXPIRED)
        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            return CouponCheck(valid=False, message=MSG_USAGE_LIMIT)

        min_amount = Decimal(coupon.min_order_amount or 0)
        if order_total < min_amount:
            return CouponCheck(
                valid=False,
                message=f"Minimum order of ₹{min_amount.normalize():f} required for this coupon",
            )

        if coupon.per_user_limit and coupon.per_user_limit > 0:
            uses = await self.count_uses(coupon.code, user_id=user_id, guest_email=guest_email)
            if uses >= coupon.per_user_limit:
                return CouponCheck(valid=False, message=MSG_ALREADY_USED)

        discount = calculate_discount(coupon, order_total)
        return CouponCheck(
            valid=True,
            message=f"Coupon applied! You save ₹{discount:f}",
            discount=discount,
            coupon=coupon,
        )

    async def increment_usage(self, code: str) -> bool:
        """Atomically bump used_count. Returns False if the code no longer exists."""
        result = await self.session.execute(
            update(Coupon)
            .where(Coupon.code == normalize_code(code))
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
