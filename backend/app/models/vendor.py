from sqlalchemy import String, ForeignKey, Boolean, Integer, DateTime, Date, Index, DECIMAL, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
import datetime as dt
from decimal import Decimal
from typing import Optional, List
from backend.app.core.base import Base


class Vendor(Base):
    __tablename__ = 'vendors'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    business_name: Mapped[str] = mapped_column(String(255))
    city_id: Mapped[int] = mapped_column(ForeignKey('cities.id'))
    # PENDING / APPROVED / SUSPENDED / TERMINATED
    status: Mapped[str] = mapped_column(String(20), default='PENDING')
    is_online: Mapped[bool] = mapped_column(Boolean, default=True)
    vacation_start: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    vacation_end: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)
    rating: Mapped[Decimal] = mapped_column(DECIMAL(3, 2), default=0)
    commission_rate: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), default=0)  # 12.00 = 12%
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=dt.datetime.utcnow)

    __table_args__ = (
        Index('ix_vendors_city_status', 'city_id', 'status'),
    )


class VendorPincode(Base):
    """Pincodes a vendor delivers to, with an optional vendor-specific delivery charge."""
    __tablename__ = 'vendor_pincodes'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    pincode: Mapped[str] = mapped_column(String(10))
    delivery_charge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'pincode', name='uq_vendor_pincodes_vendor_pincode'),
        Index('ix_vendor_pincodes_pincode_active', 'pincode', 'is_active'),
    )


class VendorWorkingHours(Base):
    __tablename__ = 'vendor_working_hours'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    day_of_week: Mapped[int] = mapped_column(Integer)  # 0=Sun, 6=Sat
    open_time: Mapped[str] = mapped_column(String(5), default='09:00')
    close_time: Mapped[str] = mapped_column(String(5), default='21:00')
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'day_of_week', name='uq_vendor_working_hours_vendor_day'),
    )


class VendorSlot(Base):
    """Platform slots a vendor participates in."""
    __tablename__ = 'vendor_slots'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    slot_id: Mapped[int] = mapped_column(ForeignKey('delivery_slots.id', ondelete='CASCADE'))
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'slot_id', name='uq_vendor_slots_vendor_slot'),
    )


class VendorHoliday(Base):
    __tablename__ = 'vendor_holidays'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    date: Mapped[dt.date] = mapped_column(Date)
    # Slot IDs blocked on that date; null or [] blocks the whole day
    blocked_slots: Mapped[Optional[List[int]]] = mapped_column(JSON(), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'date', name='uq_vendor_holidays_vendor_date'),
    )


class VendorCapacity(Base):
    """Booked/max order counters per (vendor, date, slot). Rows are created lazily."""
    __tablename__ = 'vendor_capacity'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    date: Mapped[dt.date] = mapped_column(Date)
    slot_id: Mapped[int] = mapped_column(ForeignKey('delivery_slots.id', ondelete='CASCADE'))
    max_orders: Mapped[int] = mapped_column(Integer, default=10)
    booked_orders: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'date', 'slot_id', name='uq_vendor_capacity_vendor_date_slot'),
        Index('ix_vendor_capacity_date_slot', 'date', 'slot_id'),
    )


class VendorProduct(Base):
    __tablename__ = 'vendor_products'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'))
    preparation_time: Mapped[int] = mapped_column(Integer, default=120)  # minutes
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'product_id', name='uq_vendor_products_vendor_product'),
        Index('ix_vendor_products_product_available', 'product_id', 'is_available'),
    )


class VendorServiceArea(Base):
    """Vendor opt-in to a service area with a fixed surcharge."""
    __tablename__ = 'vendor_service_areas'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    vendor_id: Mapped[int] = mapped_column(ForeignKey('vendors.id', ondelete='CASCADE'))
    service_area_id: Mapped[int] = mapped_column(ForeignKey('service_areas.id', ondelete='CASCADE'))
    delivery_surcharge: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint('vendor_id', 'service_area_id', name='uq_vendor_service_areas_vendor_area'),
    )
