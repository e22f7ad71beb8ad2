from sqlalchemy import String, ForeignKey, DateTime, DECIMAL, Text, Index, Date, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from backend.app.core.base import Base


class Order(Base):
    __tablename__ = 'orders'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(32), unique=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True)
    # null = no vendor could be allocated; operations assign one manually
    vendor_id: Mapped[Optional[int]] = mapped_column(ForeignKey('vendors.id'), nullable=True)
    address_id: Mapped[int] = mapped_column(ForeignKey('addresses.id'))
    delivery_date: Mapped[date] = mapped_column(Date)
    delivery_slot: Mapped[str] = mapped_column(String(50))  # slot slug
    subtotal: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    delivery_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    surcharge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    # [{"name": "Valentine Week", "amount": 99.0}, ...]
    surcharge_breakdown: Mapped[Optional[list]] = mapped_column(JSON(), nullable=True)
    cod_fee: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    discount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    total: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    coupon_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(20), default='ONLINE')
    payment_status: Mapped[str] = mapped_column(String(20), default='PENDING')
    status: Mapped[str] = mapped_column(String(30), default='PENDING')
    gift_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Guest checkout fields (orders placed without an account)
    guest_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    guest_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    guest_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_orders_user_id', 'user_id'),
        Index('ix_orders_vendor_id', 'vendor_id'),
        Index('ix_orders_status', 'status'),
        Index('ix_orders_vendor_delivery', 'vendor_id', 'delivery_date', 'delivery_slot'),
        Index('ix_orders_coupon_user', 'coupon_code', 'user_id'),
        Index('ix_orders_coupon_guest', 'coupon_code', 'guest_email'),
    )


class OrderItem(Base):
    """Line item snapshot: price, variation label and add-ons as resolved at checkout."""
    __tablename__ = 'order_items'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'))
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id'))
    variation_id: Mapped[Optional[int]] = mapped_column(ForeignKey('product_variations.id'), nullable=True)
    name: Mapped[str] = mapped_column(String(255))
    variation_label: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))  # unit price
    # [{"id": 3, "name": "Candles", "price": 49.0}]
    addons: Mapped[Optional[list]] = mapped_column(JSON(), nullable=True)
    addon_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)  # per unit
    uploads: Mapped[Optional[List[str]]] = mapped_column(JSON(), nullable=True)

    __table_args__ = (
        Index('ix_order_items_order_id', 'order_id'),
    )


class OrderStatusHistory(Base):
    __tablename__ = 'order_status_history'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'))
    status: Mapped[str] = mapped_column(String(30))
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_order_status_history_order_id', 'order_id'),
    )


class PartnerEarning(Base):
    """Vendor payout accrued for an order (subtotal minus platform commission)."""
    __tablename__ = 'partner_earnings'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(ForeignKey('orders.id', ondelete='CASCADE'), unique=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id'))
    order_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    commission_rate: Mapped[Decimal] = mapped_column(DECIMAL(5, 2))
    commission_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    net_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    status: Mapped[str] = mapped_column(String(20), default='PENDING')
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_partner_earnings_vendor_id', 'vendor_id'),
    )
