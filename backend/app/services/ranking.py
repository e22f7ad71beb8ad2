"""Ordering of eligible vendors."""
from datetime import date
from typing import List, Sequence

from backend.app.services.eligibility import VendorSnapshot


def rank_vendors(vendors: Sequence[VendorSnapshot], delivery_date: date, slot_id: int) -> List[VendorSnapshot]:
    """
    Best vendor first: higher rating, then fewer orders already booked for
    (delivery_date, slot_id). `sorted` is stable, so full ties keep input order.
    """
    return sorted(
        vendors,
        key=lambda v: (-v.rating, v.booked_orders(delivery_date, slot_id)),
    )


def rank_by_rating(vendors: Sequence[VendorSnapshot]) -> List[VendorSnapshot]:
    return sorted(vendors, key=lambda v: -v.rating)
