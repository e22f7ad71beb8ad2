"""Persisted cart of a signed-in customer."""
from sqlalchemy import Integer, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional, List
from backend.app.core.base import Base


class CartItem(Base):
    """One line in a customer's cart. Prices are resolved at checkout, never stored here."""
    __tablename__ = 'cart_items'
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(ForeignKey('products.id', ondelete='CASCADE'), nullable=False)
    variation_id: Mapped[Optional[int]] = mapped_column(ForeignKey('product_variations.id'), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    addon_ids: Mapped[Optional[List[int]]] = mapped_column(JSON(), nullable=True)
    # Paths under UPLOAD_DIR/pending/ (photo cakes, printed cards)
    uploads: Mapped[Optional[List[str]]] = mapped_column(JSON(), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_cart_items_user_id', 'user_id'),
    )
