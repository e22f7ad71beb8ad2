"""
Shared constants for the backend application.
"""
from decimal import Decimal

# ---------------------------------------------------------------------------
# Vendor lifecycle
# ---------------------------------------------------------------------------
VENDOR_APPROVED = "APPROVED"

# ---------------------------------------------------------------------------
# Order statuses
# ---------------------------------------------------------------------------
ORDER_STATUSES = (
    "PENDING", "CONFIRMED", "PREPARING", "OUT_FOR_DELIVERY",
    "DELIVERED", "CANCELLED", "REFUNDED",
)
# Orders in these statuses do not count towards a coupon's per-user usage
COUPON_EXCLUDED_ORDER_STATUSES = ("CANCELLED", "REFUNDED")

# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
DISCOUNT_PERCENTAGE = "percentage"
DISCOUNT_FLAT = "flat"

# ---------------------------------------------------------------------------
# Platform surcharges: applies_to is "all", "slot:<slug>" or "category:<slug>"
# ---------------------------------------------------------------------------
SURCHARGE_APPLIES_ALL = "all"
SURCHARGE_SLOT_PREFIX = "slot:"
SURCHARGE_CATEGORY_PREFIX = "category:"

# ---------------------------------------------------------------------------
# Decimal helpers
# ---------------------------------------------------------------------------
ZERO = Decimal("0")
ONE_CENT = Decimal("0.01")
ONE_UNIT = Decimal("1")
PERCENT_BASE = Decimal("100")

# Fallback city code in order numbers when the pincode resolves to no zone
GENERIC_CITY_CODE = "GEN"

# ---------------------------------------------------------------------------
# Delivery holidays
# ---------------------------------------------------------------------------
HOLIDAY_FULL_BLOCK = "FULL_BLOCK"
HOLIDAY_STANDARD_ONLY = "STANDARD_ONLY"
HOLIDAY_CUSTOM = "CUSTOM"
# The only slot left open on a STANDARD_ONLY holiday
STANDARD_SLOT_SLUG = "standard"
