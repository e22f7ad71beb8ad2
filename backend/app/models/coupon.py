from sqlalchemy import String, DECIMAL, Boolean, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from decimal import Decimal
from typing import Optional
from backend.app.core.base import Base


class Coupon(Base):
    __tablename__ = 'coupons'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True)  # stored upper-case
    discount_type: Mapped[str] = mapped_column(String(20), default='percentage')  # percentage | flat
    discount_value: Mapped[Decimal] = mapped_column(DECIMAL(10, 2))
    max_discount: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(10, 2), nullable=True)
    min_order_amount: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), default=0)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # null = unlimited
    used_count: Mapped[int] = mapped_column(Integer, default=0)
    per_user_limit: Mapped[int] = mapped_column(Integer, default=0)  # 0 = unlimited
    valid_from: Mapped[datetime] = mapped_column(DateTime)
    valid_until: Mapped[datetime] = mapped_column(DateTime)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
