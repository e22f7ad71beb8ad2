# backend/app/services/orders.py
"""
Order service - checkout composition and order read-back.

`OrderService.create_order` runs the critical path of a checkout: address,
cart lines, subtotal, charges, coupon, vendor allocation, final total and
the Order/OrderItem rows. It only flushes; the router commits and then hands
`CreatedOrder.effects` to the background effect runner.
"""

import random
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List, Dict, Any, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.constants import GENERIC_CITY_CODE, ONE_CENT, ZERO
from backend.app.core.exceptions import ServiceError
from backend.app.core.logging import get_logger
from backend.app.core.metrics import orders_created_total
from backend.app.core.settings import get_settings
from backend.app.models.cart import CartItem
from backend.app.models.order import Order, OrderItem, OrderStatusHistory
from backend.app.models.product import Product, ProductVariation, ProductAddon
from backend.app.models.user import User, Address
from backend.app.schemas import OrderCreate, CartLine, AddressInput
from backend.app.services.allocation import AllocationContext, AllocationPolicy, Allocation, STRATEGY_NONE
from backend.app.services.charges import ChargeDataLoader, FinalCharges, compute_preliminary_charges
from backend.app.services.coupons import CouponService
from backend.app.services.eligibility import required_lead_time
from backend.app.services.file_storage import upload_root
from backend.app.services.order_effects import (
    PostOrderEffect,
    status_history_effect,
    partner_earning_effect,
    promote_uploads_effect,
    coupon_usage_effect,
    clear_cart_effect,
)

logger = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 5


class OrderServiceError(ServiceError):
    """Base exception for order service errors."""


class EmptyCartError(OrderServiceError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message, 400)


class ProductsNotFoundError(OrderServiceError):
    def __init__(self, product_ids=(), variation_ids=(), addon_ids=()):
        self.product_ids = sorted(set(product_ids))
        self.variation_ids = sorted(set(variation_ids))
        self.addon_ids = sorted(set(addon_ids))
        parts = []
        if self.product_ids:
            parts.append(f"products {self.product_ids}")
        if self.variation_ids:
            parts.append(f"variations {self.variation_ids}")
        if self.addon_ids:
            parts.append(f"add-ons {self.addon_ids}")
        super().__init__(f"Unavailable items in cart: {', '.join(parts)}", 400)


class AddressRequiredError(OrderServiceError):
    def __init__(self, message: str = "Delivery address is required"):
        super().__init__(message, 400)


class GuestDetailsRequiredError(OrderServiceError):
    def __init__(self):
        super().__init__("Guest name, email, and phone are required for guest checkout", 400)


class AddressNotFoundError(OrderServiceError):
    def __init__(self, address_id: int):
        super().__init__(f"Address {address_id} not found", 404)


class UserNotFoundError(OrderServiceError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} not found", 404)


class UnknownDeliverySlotError(OrderServiceError):
    def __init__(self, slug: str):
        super().__init__(f"Unknown delivery slot '{slug}'", 400)


class InvalidDeliveryDateError(OrderServiceError):
    def __init__(self, delivery_date: date):
        super().__init__(f"Delivery date {delivery_date.isoformat()} is in the past", 400)


class OrderNotFoundError(OrderServiceError):
    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found", 404)


@dataclass
class PricedLine:
    """A cart line resolved against live catalog rows."""
    product: Product
    variation: Optional[ProductVariation]
    addons: List[ProductAddon]
    quantity: int
    uploads: List[str]

    @property
    def unit_price(self) -> Decimal:
        if self.variation is not None:
            return effective_variation_price(self.variation)
        return Decimal(self.product.base_price)

    @property
    def addon_price(self) -> Decimal:
        return sum((Decimal(a.price) for a in self.addons), ZERO)

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price + self.addon_price) * self.quantity


@dataclass
class CreatedOrder:
    order: Order
    items: List[OrderItem]
    charges: FinalCharges
    allocation: Optional[Allocation]
    effects: List[PostOrderEffect] = field(default_factory=list)


def effective_variation_price(variation: ProductVariation, now: Optional[datetime] = None) -> Decimal:
    """Sale price while the sale window is open (open-ended bounds allowed), else the list price."""
    now = now or datetime.utcnow()
    if variation.sale_price is not None:
        started = variation.sale_from is None or variation.sale_from <= now
        not_ended = variation.sale_to is None or variation.sale_to >= now
        if started and not_ended:
            return Decimal(variation.sale_price)
    return Decimal(variation.price)


def generate_order_number(city_code: str) -> str:
    return f"GC-{city_code}-{random.randint(10000, 99999)}"


def city_code_for(city_slug: Optional[str]) -> str:
    if not city_slug:
        return GENERIC_CITY_CODE
    return city_slug[:3].upper()


def to_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(ONE_CENT)


class OrderService:
    """Service class for order operations."""

    def __init__(self, session: AsyncSession, allocation_policy: Optional[AllocationPolicy] = None):
        self.session = session
        self.settings = get_settings()
        self.allocation_policy = allocation_policy or AllocationPolicy.default(session)
        self.charge_data = ChargeDataLoader(session)

    # ----- Address and cart resolution -----

    async def _resolve_address(self, payload: OrderCreate) -> Address:
        if payload.user_id is None:
            if payload.delivery_address is None:
                raise AddressRequiredError("Delivery address is required for guest checkout")
            return await self._create_address(payload.delivery_address, user_id=None)

        if payload.address_id is not None:
            address = await self.session.get(Address, payload.address_id)
            if address is None or address.user_id != payload.user_id:
                raise AddressNotFoundError(payload.address_id)
            return address
        if payload.delivery_address is not None:
            return await self._create_address(payload.delivery_address, user_id=payload.user_id)
        raise AddressRequiredError("Address ID or delivery address is required")

    async def _create_address(self, data: AddressInput, user_id: Optional[int]) -> Address:
        address = Address(user_id=user_id, **data.model_dump())
        self.session.add(address)
        await self.session.flush()
        return address

    async def _cart_lines(self, payload: OrderCreate) -> List[CartLine]:
        if payload.cart_items is not None:
            lines = payload.cart_items
        elif payload.user_id is not None:
            result = await self.session.execute(
                select(CartItem).where(CartItem.user_id == payload.user_id).order_by(CartItem.id)
            )
            lines = [
                CartLine(
                    product_id=row.product_id,
                    variation_id=row.variation_id,
                    quantity=row.quantity,
                    addon_ids=row.addon_ids or [],
                    uploads=row.uploads or [],
                )
                for row in result.scalars().all()
            ]
        else:
            lines = []
        if not lines:
            if payload.user_id is None:
                raise EmptyCartError("Cart items are required for guest checkout")
            raise EmptyCartError()
        return lines

    async def price_lines(self, lines: Sequence[CartLine]) -> List[PricedLine]:
        """
        Resolve every line against active products, variations and add-ons.

        Raises:
            ProductsNotFoundError: listing every missing or inactive reference
        """
        product_ids = {line.product_id for line in lines}
        variation_ids = {line.variation_id for line in lines if line.variation_id is not None}
        addon_ids = {aid for line in lines for aid in line.addon_ids}

        products = {
            p.id: p for p in (await self.session.execute(
                select(Product).where(Product.id.in_(product_ids), Product.is_active == True)
            )).scalars().all()
        }
        variations = {}
        if variation_ids:
            variations = {
                v.id: v for v in (await self.session.execute(
                    select(ProductVariation).where(
                        ProductVariation.id.in_(variation_ids), ProductVariation.is_active == True
                    )
                )).scalars().all()
            }
        addons = {}
        if addon_ids:
            addons = {
                a.id: a for a in (await self.session.execute(
                    select(ProductAddon).where(ProductAddon.id.in_(addon_ids), ProductAddon.is_active == True)
                )).scalars().all()
            }

        missing_products, missing_variations, missing_addons = [], [], []
        priced = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                missing_products.append(line.product_id)
                continue
            variation = None
            if line.variation_id is not None:
                variation = variations.get(line.variation_id)
                if variation is None or variation.product_id != product.id:
                    missing_variations.append(line.variation_id)
                    continue
            line_addons = []
            for aid in line.addon_ids:
                addon = addons.get(aid)
                if addon is None or addon.product_id != product.id:
                    missing_addons.append(aid)
                else:
                    line_addons.append(addon)
            priced.append(PricedLine(product, variation, line_addons, line.quantity, list(line.uploads)))

        if missing_products or missing_variations or missing_addons:
            raise ProductsNotFoundError(missing_products, missing_variations, missing_addons)
        return priced

    # ----- Checkout -----

    def _validate_guest(self, payload: OrderCreate) -> None:
        if payload.user_id is not None:
            return
        if not (payload.guest_name and payload.guest_email and payload.guest_phone):
            raise GuestDetailsRequiredError()
        if payload.delivery_address is None:
            raise AddressRequiredError("Delivery address is required for guest checkout")

    async def create_order(self, payload: OrderCreate) -> CreatedOrder:
        """
        Create an order from a checkout request.

        Caller must commit the session after this returns, then submit
        `effects` to the background runner.

        Raises:
            OrderServiceError subclasses for every rejected request; nothing
            is left flushed in that case once the caller rolls back.
        """
        is_guest = payload.user_id is None
        self._validate_guest(payload)
        if not is_guest and await self.session.get(User, payload.user_id) is None:
            raise UserNotFoundError(payload.user_id)
        if payload.delivery_date < date.today():
            raise InvalidDeliveryDateError(payload.delivery_date)

        lines = await self._cart_lines(payload)
        slot = await self.charge_data.get_slot(payload.delivery_slot)
        if slot is None:
            raise UnknownDeliverySlotError(payload.delivery_slot)
        address = await self._resolve_address(payload)
        priced = await self.price_lines(lines)

        logger.info(
            "Creating order",
            user_id=payload.user_id,
            guest=is_guest,
            pincode=address.pincode,
            delivery_date=payload.delivery_date.isoformat(),
            slot=slot.slug,
            lines=len(priced),
        )

        subtotal = sum((line.line_total for line in priced), ZERO)
        product_ids = tuple(sorted({line.product.id for line in priced}))

        zone = await self.charge_data.find_zone(address.pincode)
        city_id = zone.city_id if zone else None
        slot_charge = await self.charge_data.slot_charge(slot, city_id)
        categories = await self.charge_data.category_slugs(product_ids)
        platform_lines = await self.charge_data.platform_surcharges(
            payload.delivery_date, city_id, slot.slug, categories
        )
        preliminary = compute_preliminary_charges(subtotal, zone, slot_charge, platform_lines)

        coupon_code = None
        if payload.coupon_code:
            check = await CouponService(self.session).validate(
                payload.coupon_code, subtotal, user_id=payload.user_id, guest_email=payload.guest_email
            )
            if check.valid:
                coupon_code = check.coupon.code
                preliminary = preliminary.with_discount(check.discount)
            else:
                logger.info("Coupon not applied", coupon_code=payload.coupon_code, reason=check.message)
        if payload.payment_method == "COD":
            preliminary = preliminary.with_cod_fee(self.settings.COD_FEE)

        allocation = await self.allocation_policy.allocate(AllocationContext(
            pincode=address.pincode,
            delivery_date=payload.delivery_date,
            slot_id=slot.id,
            product_ids=product_ids,
            required_lead_time_hours=required_lead_time(
                [line.product.min_lead_time_hours or 0 for line in priced],
                self.settings.MIN_LEAD_TIME_HOURS,
            ),
            city_id=city_id,
        ))

        if allocation is not None:
            charges = preliminary.with_vendor_surcharge(
                pincode_charge=allocation.vendor.pincode_charge(address.pincode),
                area_surcharge=await self.charge_data.vendor_area_surcharge(allocation.vendor_id, address.pincode),
            )
        else:
            charges = preliminary.with_vendor_surcharge()

        order = Order(
            user_id=payload.user_id,
            vendor_id=allocation.vendor_id if allocation else None,
            address_id=address.id,
            delivery_date=payload.delivery_date,
            delivery_slot=slot.slug,
            subtotal=to_money(charges.subtotal),
            delivery_charge=to_money(charges.delivery_charge),
            surcharge=to_money(charges.surcharge),
            surcharge_breakdown=[line.as_dict() for line in charges.surcharge_breakdown],
            cod_fee=to_money(charges.cod_fee),
            discount=to_money(charges.discount),
            total=to_money(charges.total),
            coupon_code=coupon_code,
            payment_method=payload.payment_method,
            payment_status="PENDING",
            status="PENDING",
            gift_message=payload.gift_message,
            special_instructions=payload.special_instructions,
            guest_name=payload.guest_name if is_guest else None,
            guest_email=payload.guest_email if is_guest else None,
            guest_phone=payload.guest_phone if is_guest else None,
        )
        await self._insert_with_unique_number(order, city_code_for(zone.city_slug if zone else None))

        items = [
            OrderItem(
                order_id=order.id,
                product_id=line.product.id,
                variation_id=line.variation.id if line.variation else None,
                name=line.product.name,
                variation_label=line.variation.label if line.variation else None,
                quantity=line.quantity,
                price=to_money(line.unit_price),
                addons=[{"id": a.id, "name": a.name, "price": float(a.price)} for a in line.addons] or None,
                addon_price=to_money(line.addon_price),
                uploads=line.uploads or None,
            )
            for line in priced
        ]
        self.session.add_all(items)
        await self.session.flush()

        strategy = allocation.strategy if allocation else STRATEGY_NONE
        orders_created_total.labels(allocation=strategy).inc()
        logger.info(
            "Order created",
            order_id=order.id,
            order_number=order.order_number,
            vendor_id=order.vendor_id,
            allocation=strategy,
            total=str(order.total),
        )

        return CreatedOrder(
            order=order,
            items=items,
            charges=charges,
            allocation=allocation,
            effects=self._post_creation_effects(order, allocation, priced),
        )

    def _post_creation_effects(
        self, order: Order, allocation: Optional[Allocation], priced: List[PricedLine]
    ) -> List[PostOrderEffect]:
        effects = [
            status_history_effect(order.id, "Guest order placed" if order.user_id is None else "Order placed"),
        ]
        if allocation is not None:
            effects.append(partner_earning_effect(
                order.id, allocation.vendor_id, order.subtotal, allocation.vendor.commission_rate
            ))
        if any(line.uploads for line in priced):
            effects.append(promote_uploads_effect(order.id, order.order_number, upload_root(self.settings.UPLOAD_DIR)))
        if order.coupon_code:
            effects.append(coupon_usage_effect(order.coupon_code))
        if order.user_id is not None:
            effects.append(clear_cart_effect(order.user_id))
        return effects

    async def _insert_with_unique_number(self, order: Order, city_code: str) -> None:
        """Flush `order` under a random order number, drawing again when the number is taken."""
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order.order_number = generate_order_number(city_code)
            try:
                async with self.session.begin_nested():
                    # A rolled-back savepoint expunges the order, so add it on every attempt
                    self.session.add(order)
                    await self.session.flush()
                return
            except IntegrityError as e:
                logger.warning(
                    "Order number collision", order_number=order.order_number, attempt=attempt, error=str(e.orig),
                )
        raise OrderServiceError("Could not allocate an order number", 503)

    # ----- Read-back -----

    async def get_order(self, order_id: int) -> Dict[str, Any]:
        order = await self.session.get(Order, order_id)
        if not order:
            raise OrderNotFoundError(order_id)
        items = (await self.session.execute(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        )).scalars().all()
        history = (await self.session.execute(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.created_at, OrderStatusHistory.id)
        )).scalars().all()
        return self.order_body(order, items, history)

    @staticmethod
    def order_body(order: Order, items: Sequence[OrderItem], history: Sequence[OrderStatusHistory] = ()) -> Dict[str, Any]:
        data = {c.name: getattr(order, c.name) for c in Order.__table__.columns}
        data["items"] = list(items)
        data["status_history"] = list(history)
        return data
