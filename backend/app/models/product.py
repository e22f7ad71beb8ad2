from sqlalchemy import String, ForeignKey, DECIMAL, Boolean, Index, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from decimal import Decimal
from typing import Optional
from backend.app.core.base import Base


class Product(Base):
    __tablename__ = 'products'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey('categories.id', ondelete='SET NULL'), nullable=True)
    base_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    # Advance notice this product needs; the slowest item in a cart binds the order
    min_lead_time_hours: Mapped[int] = mapped_column(Integer, default=2)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_products_is_active', 'is_active'),
        Index('ix_products_category_id', 'category_id'),
    )


class ProductVariation(Base):
    """Size/weight option of a product ("1 kg", "12 roses") with its own price and sale window."""
    __tablename__ = 'product_variations'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'))
    label: Mapped[str] = mapped_column(String(100))
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    sale_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    sale_from: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    sale_to: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_product_variations_product_id', 'product_id'),
    )


class ProductAddon(Base):
    """Optional extra sold with a product (candles, greeting card, photo print)."""
    __tablename__ = 'product_addons'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'))
    name: Mapped[str] = mapped_column(String(255))
    price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index('ix_product_addons_product_id', 'product_id'),
    )
