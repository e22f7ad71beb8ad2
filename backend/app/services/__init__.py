# backend/app/services/__init__.py
"""
Services layer for business logic.
Keeps API endpoints thin and business logic testable and reusable.
"""

from backend.app.services.orders import (
    OrderService,
    OrderServiceError,
    EmptyCartError,
    ProductsNotFoundError,
    AddressRequiredError,
    GuestDetailsRequiredError,
    AddressNotFoundError,
    UserNotFoundError,
    UnknownDeliverySlotError,
    InvalidDeliveryDateError,
    OrderNotFoundError,
    CreatedOrder,
)
from backend.app.services.allocation import (
    AllocationPolicy,
    AllocationContext,
    Allocation,
    StrictAllocation,
    PincodeOnlyFallbackAllocation,
)
from backend.app.services.capacity import CapacityStore
from backend.app.services.coupons import CouponService, CouponServiceError
from backend.app.services.availability import DeliveryAvailabilityService, DeliveryServiceError
from backend.app.services.delivery_holidays import DeliveryHolidayLoader, HolidayRule
from backend.app.services.order_effects import BackgroundEffectRunner
from backend.app.services.cache import CacheService

__all__ = [
    # Order service
    "OrderService",
    "OrderServiceError",
    "EmptyCartError",
    "ProductsNotFoundError",
    "AddressRequiredError",
    "GuestDetailsRequiredError",
    "AddressNotFoundError",
    "UserNotFoundError",
    "UnknownDeliverySlotError",
    "InvalidDeliveryDateError",
    "OrderNotFoundError",
    "CreatedOrder",
    # Vendor allocation
    "AllocationPolicy",
    "AllocationContext",
    "Allocation",
    "StrictAllocation",
    "PincodeOnlyFallbackAllocation",
    "CapacityStore",
    # Coupons
    "CouponService",
    "CouponServiceError",
    # Delivery availability
    "DeliveryAvailabilityService",
    "DeliveryServiceError",
    "DeliveryHolidayLoader",
    "HolidayRule",
    # Post-order effects
    "BackgroundEffectRunner",
    # Cache service
    "CacheService",
]
