from sqlalchemy import String, ForeignKey, Integer, DECIMAL, Boolean, Index, JSON, Date, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date
from decimal import Decimal
from typing import Optional, List
from backend.app.core.base import Base


class City(Base):
    __tablename__ = 'cities'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(100), unique=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    base_delivery_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    # null = no free-delivery threshold
    free_delivery_above: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class CityZone(Base):
    """A named group of pincodes inside a city sharing an extra delivery charge."""
    __tablename__ = 'city_zones'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    city_id: Mapped[int] = mapped_column(ForeignKey('cities.id', ondelete='CASCADE'))
    name: Mapped[str] = mapped_column(String(255))
    # e.g. ["160015", "160016"]; a pincode belongs to at most one active zone
    pincodes: Mapped[List[str]] = mapped_column(JSON(), default=list)
    extra_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_city_zones_city_active', 'city_id', 'is_active'),
    )


class DeliverySlot(Base):
    """Platform-wide delivery window (standard, midnight, express, ...)."""
    __tablename__ = 'delivery_slots'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(50), unique=True)
    start_time: Mapped[str] = mapped_column(String(5))  # "09:00"
    end_time: Mapped[str] = mapped_column(String(5))  # "21:00"
    base_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class CityDeliveryConfig(Base):
    """Per-city enablement and price override of a platform slot."""
    __tablename__ = 'city_delivery_configs'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    city_id: Mapped[int] = mapped_column(ForeignKey('cities.id', ondelete='CASCADE'))
    slot_id: Mapped[int] = mapped_column(ForeignKey('delivery_slots.id', ondelete='CASCADE'))
    # null = use DeliverySlot.base_charge
    charge_override: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('city_id', 'slot_id', name='uq_city_delivery_configs_city_slot'),
    )


class PlatformSurcharge(Base):
    """Time-bounded promotional surcharge, e.g. "Valentine Week" on flowers."""
    __tablename__ = 'platform_surcharges'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    # "all" | "slot:<slug>" | "category:<slug>"
    applies_to: Mapped[str] = mapped_column(String(100), default='all')
    # null = every city
    city_id: Mapped[Optional[int]] = mapped_column(ForeignKey('cities.id', ondelete='CASCADE'), nullable=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_platform_surcharges_active_dates', 'is_active', 'start_date', 'end_date'),
    )


class DeliveryHoliday(Base):
    """
    Delivery restriction for one date, platform-wide (city_id null) or for a
    single city. A city row wins over the platform row for the same date.
    """
    __tablename__ = 'delivery_holidays'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[date] = mapped_column(Date)
    city_id: Mapped[Optional[int]] = mapped_column(ForeignKey('cities.id', ondelete='CASCADE'), nullable=True)
    # FULL_BLOCK | STANDARD_ONLY | CUSTOM
    mode: Mapped[str] = mapped_column(String(20), default='FULL_BLOCK')
    # CUSTOM only: [{"slug": "midnight", "blocked": true, "price_override": null}, ...]
    slot_overrides: Mapped[Optional[list]] = mapped_column(JSON(), nullable=True)
    reason: Mapped[str] = mapped_column(String(255))
    customer_message: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index('ix_delivery_holidays_date', 'date'),
        UniqueConstraint('date', 'city_id', name='uq_delivery_holidays_date_city'),
    )


class ServiceArea(Base):
    """Serviceable locality; vendors opt into areas with their own surcharge."""
    __tablename__ = 'service_areas'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    city_id: Mapped[int] = mapped_column(ForeignKey('cities.id', ondelete='CASCADE'))
    name: Mapped[str] = mapped_column(String(255))
    pincode: Mapped[str] = mapped_column(String(10))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_service_areas_pincode', 'pincode'),
    )
