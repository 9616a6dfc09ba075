"""
Request schemas for the storefront API.

Each model validates one request body at the HTTP boundary; services only
receive already-validated values.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


PINCODE_PATTERN = r"^\d{6}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class Address(BaseModel):
    line1: str = Field(..., min_length=1, description="Street address")
    line2: Optional[str] = Field(None, description="Apartment, suite, landmark")
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., pattern=PINCODE_PATTERN, description="6-digit postal code")


class CartItemAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
    variant_id: Optional[str] = None
    quantity: int = Field(1, gt=0)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0, description="0 removes the line")


class DiscountCheck(BaseModel):
    code: str = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)


class CheckoutRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., pattern=EMAIL_PATTERN)
    customer_phone: str = Field(..., min_length=5)
    shipping_address: Address
    billing_address: Optional[Address] = Field(None, description="Defaults to the shipping address")
    payment_method: Literal["cod", "razorpay"] = "cod"
    discount_code: Optional[str] = None

    @field_validator("customer_name", "customer_email", "customer_phone")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("discount_code")
    @classmethod
    def _blank_code_is_none(cls, value: Optional[str]) -> Optional[str]:
        value = (value or "").strip()
        return value or None

    @property
    def pincode(self) -> str:
        return self.shipping_address.pincode


class DiscountCreate(BaseModel):
    code: str = Field(..., min_length=1)
    kind: Literal["percentage", "fixed"]
    value: Decimal = Field(..., gt=0)
    min_order_amount: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True

    @model_validator(mode="after")
    def _window(self):
        if self.valid_from >= self.valid_until:
            raise ValueError("valid_from must be before valid_until")
        return self


class DiscountUpdate(BaseModel):
    code: Optional[str] = None
    kind: Optional[Literal["percentage", "fixed"]] = None
    value: Optional[Decimal] = Field(None, gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None


class ShippingRuleCreate(BaseModel):
    pincode_start: str = Field(..., pattern=r"^\d+$")
    pincode_end: str = Field(..., pattern=r"^\d+$")
    state: str = Field(..., min_length=1)
    delivery_days: int = Field(..., ge=0)
    shipping_charge: Decimal = Field(..., ge=0)
    is_cod_available: bool = True
    is_active: bool = True


class ShippingRuleUpdate(BaseModel):
    pincode_start: Optional[str] = Field(None, pattern=r"^\d+$")
    pincode_end: Optional[str] = Field(None, pattern=r"^\d+$")
    state: Optional[str] = None
    delivery_days: Optional[int] = Field(None, ge=0)
    shipping_charge: Optional[Decimal] = Field(None, ge=0)
    is_cod_available: Optional[bool] = None
    is_active: Optional[bool] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]] = None
    payment_status: Optional[Literal["pending", "paid", "failed", "refunded"]] = None

    @model_validator(mode="after")
    def _something(self):
        if self.status is None and self.payment_status is None:
            raise ValueError("No fields to update")
        return self


SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    sku: str = Field(..., min_length=1)
    base_price: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    currency: str = Field("INR", min_length=3, max_length=3)
    images: List[str] = Field(default_factory=list)
    category_id: Optional[str] = None
    stock_quantity: Optional[int] = Field(None, ge=0, description="None leaves stock untracked")
    featured: bool = False
    is_active: bool = True
    sort_order: int = 0


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    sku: Optional[str] = Field(None, min_length=1)
    base_price: Optional[Decimal] = Field(None, gt=0)
    description: Optional[str] = None
    images: Optional[List[str]] = None
    category_id: Optional[str] = None
    stock_quantity: Optional[int] = Field(None, ge=0)
    featured: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class VariantCreate(BaseModel):
    variant_name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    attributes: Dict[str, str] = Field(default_factory=dict)
    is_active: bool = True


class VariantUpdate(BaseModel):
    variant_name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    attributes: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None


class WishlistAdd(BaseModel):
    user_id: str = Field(..., min_length=1)
    product_id: str = Field(..., min_length=1)
