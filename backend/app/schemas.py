from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from decimal import Decimal
from datetime import date, datetime
from backend.app.core.text import sanitize_user_input, normalize_pincode

# --- Addresses ---
class AddressInput(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=5, max_length=20)
    address: str = Field(min_length=1)
    landmark: Optional[str] = None
    city: str = Field(min_length=1, max_length=100)
    state: Optional[str] = None
    pincode: str

    @field_validator("name", "address", "landmark")
    @classmethod
    def sanitize_text_fields(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return sanitize_user_input(v, max_length=2000)

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: str) -> str:
        return normalize_pincode(v)


# --- Checkout ---
class CartLine(BaseModel):
    product_id: int
    variation_id: Optional[int] = None
    quantity: int = Field(gt=0, le=99)
    addon_ids: List[int] = Field(default_factory=list)
    # relative paths under UPLOAD_DIR, e.g. "pending/3f2a.jpg"
    uploads: List[str] = Field(default_factory=list)


class OrderCreate(BaseModel):
    user_id: Optional[int] = None
    address_id: Optional[int] = None
    delivery_address: Optional[AddressInput] = None
    # omitted for signed-in users = use the persisted cart
    cart_items: Optional[List[CartLine]] = None
    delivery_date: date
    delivery_slot: str = Field(min_length=1, max_length=50)
    coupon_code: Optional[str] = Field(default=None, max_length=50)
    payment_method: Literal["ONLINE", "COD"] = "ONLINE"
    guest_name: Optional[str] = Field(default=None, max_length=255)
    guest_email: Optional[str] = Field(default=None, max_length=255)
    guest_phone: Optional[str] = Field(default=None, max_length=50)
    gift_message: Optional[str] = None
    special_instructions: Optional[str] = None

    @field_validator("gift_message", "special_instructions")
    @classmethod
    def sanitize_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return sanitize_user_input(v, max_length=1000) or None

    @field_validator("guest_name")
    @classmethod
    def sanitize_guest_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return sanitize_user_input(v, max_length=255) or None

    @field_validator("guest_email")
    @classmethod
    def normalize_guest_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("coupon_code")
    @classmethod
    def normalize_coupon(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class SurchargeLineResponse(BaseModel):
    name: str
    amount: Decimal


class OrderItemResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    product_id: int
    variation_id: Optional[int] = None
    name: str
    variation_label: Optional[str] = None
    quantity: int
    price: Decimal
    addons: Optional[list] = None
    addon_price: Decimal
    uploads: Optional[List[str]] = None


class StatusHistoryResponse(BaseModel):
    model_config = {"from_attributes": True}

    status: str
    note: Optional[str] = None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    order_number: str
    user_id: Optional[int] = None
    vendor_id: Optional[int] = None
    address_id: int
    delivery_date: date
    delivery_slot: str
    subtotal: Decimal
    delivery_charge: Decimal
    surcharge: Decimal
    surcharge_breakdown: List[SurchargeLineResponse] = Field(default_factory=list)
    cod_fee: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None
    payment_method: str
    payment_status: str
    status: str
    gift_message: Optional[str] = None
    special_instructions: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    created_at: datetime
    items: List[OrderItemResponse] = Field(default_factory=list)
    status_history: List[StatusHistoryResponse] = Field(default_factory=list)

    @field_validator("surcharge_breakdown", mode="before")
    @classmethod
    def default_breakdown(cls, v):
        return v or []


# --- Coupons ---
class CouponValidateRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    order_total: Decimal = Field(ge=0)
    user_id: Optional[int] = None
    guest_email: Optional[str] = None


class CouponValidateResponse(BaseModel):
    valid: bool
    discount: Decimal = Decimal(0)
    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    message: str


# --- Delivery ---
class DeliverySlotResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    name: str
    slug: str
    start_time: str
    end_time: str
    base_charge: Decimal


class SlotAvailability(BaseModel):
    slug: str
    name: str
    start_time: str
    end_time: str
    price: Decimal
    is_available: bool
    is_full: bool
    eligible_vendors: int
    reason: Optional[str] = None


class AvailabilityResponse(BaseModel):
    city_id: int
    delivery_date: date
    slots: List[SlotAvailability]
    fully_blocked: bool = False
    holiday_reason: Optional[str] = None


class AvailableDatesResponse(BaseModel):
    city_id: int
    available_dates: List[date]
