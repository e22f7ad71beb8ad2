"""
Best-effort work that follows a committed order.

The order row is the durability boundary. Everything after it (status
history, partner earning, upload promotion, coupon usage, cart clearing)
runs in a background task, one effect at a time, each in its own session
and under its own timeout. A failing or slow effect is logged and counted;
it never reaches the customer and never rolls back the order.
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import ONE_CENT, PERCENT_BASE
from backend.app.core.logging import get_logger
from backend.app.core.metrics import post_order_effects_total
from backend.app.models.cart import CartItem
from backend.app.models.order import OrderItem, OrderStatusHistory, PartnerEarning
from backend.app.services.coupons import CouponService
from backend.app.services.file_storage import promote_uploads_async

logger = get_logger(__name__)

EffectFn = Callable[[AsyncSession], Awaitable[None]]
SessionFactory = Callable[[], AsyncSession]


@dataclass(frozen=True)
class PostOrderEffect:
    name: str
    run: EffectFn


class BackgroundEffectRunner:
    """Runs post-order effects outside the request that created the order."""

    def __init__(self, session_factory: SessionFactory, timeout: float = 5.0):
        self._session_factory = session_factory
        self._timeout = timeout
        # Strong references; the event loop only keeps weak ones
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, order_number: str, effects: List[PostOrderEffect]) -> Optional[asyncio.Task]:
        if not effects:
            return None
        task = asyncio.create_task(self._run_all(order_number, effects))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every submitted effect (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run_all(self, order_number: str, effects: List[PostOrderEffect]) -> None:
        for effect in effects:
            await self._run_one(order_number, effect)

    async def _run_one(self, order_number: str, effect: PostOrderEffect) -> None:
        try:
            await asyncio.wait_for(self._in_session(effect), timeout=self._timeout)
        except asyncio.TimeoutError:
            post_order_effects_total.labels(effect=effect.name, outcome="timeout").inc()
            logger.warning(
                "Post-order effect timed out",
                effect=effect.name, order_number=order_number, timeout=self._timeout,
            )
        except Exception as e:
            post_order_effects_total.labels(effect=effect.name, outcome="error").inc()
            logger.warning(
                "Post-order effect failed",
                effect=effect.name, order_number=order_number, error=str(e), exc_info=True,
            )
        else:
            post_order_effects_total.labels(effect=effect.name, outcome="ok").inc()

    async def _in_session(self, effect: PostOrderEffect) -> None:
        async with self._session_factory() as session:
            try:
                await effect.run(session)
                await session.commit()
            except BaseException:
                await session.rollback()
                raise


def commission_split(amount: Decimal, rate: Decimal) -> tuple:
    """(commission, net) for a vendor payout, both to the cent."""
    commission = (amount * rate / PERCENT_BASE).quantize(ONE_CENT)
    return commission, amount - commission


def status_history_effect(order_id: int, note: str) -> PostOrderEffect:
    async def run(session: AsyncSession) -> None:
        session.add(OrderStatusHistory(order_id=order_id, status="PENDING", note=note))

    return PostOrderEffect("status_history", run)


def partner_earning_effect(order_id: int, vendor_id: int, subtotal: Decimal, commission_rate: Decimal) -> PostOrderEffect:
    async def run(session: AsyncSession) -> None:
        commission, net = commission_split(subtotal, commission_rate)
        session.add(PartnerEarning(
            order_id=order_id,
            vendor_id=vendor_id,
            order_amount=subtotal,
            commission_rate=commission_rate,
            commission_amount=commission,
            net_amount=net,
        ))

    return PostOrderEffect("partner_earning", run)


def promote_uploads_effect(order_id: int, order_number: str, root: Path) -> PostOrderEffect:
    async def run(session: AsyncSession) -> None:
        result = await session.execute(select(OrderItem).where(OrderItem.order_id == order_id))
        for item in result.scalars().all():
            if not item.uploads:
                continue
            promoted = await promote_uploads_async(root, item.uploads, order_number)
            if promoted != item.uploads:
                item.uploads = promoted

    return PostOrderEffect("promote_uploads", run)


def coupon_usage_effect(coupon_code: str) -> PostOrderEffect:
    async def run(session: AsyncSession) -> None:
        if not await CouponService(session).increment_usage(coupon_code):
            logger.warning("Coupon vanished before usage increment", coupon_code=coupon_code)

    return PostOrderEffect("coupon_usage", run)


def clear_cart_effect(user_id: int) -> PostOrderEffect:
    async def run(session: AsyncSession) -> None:
        await session.execute(delete(CartItem).where(CartItem.user_id == user_id))

    return PostOrderEffect("clear_cart", run)
