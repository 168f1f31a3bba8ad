# app/schemas/order.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.domain.enums import OrderStatus
from app.domain.timestamps import normalize_timestamp
from app.schemas.cart import CartItem

PHONE_PATTERN = r"^\+?[0-9][0-9 ()\-]{5,30}$"


class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=300)
    city: str = Field(..., min_length=1, max_length=120)
    state: Optional[str] = Field(default=None, max_length=120)
    zip_code: Optional[str] = Field(default=None, max_length=30)


class CustomerInfo(BaseModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[EmailStr] = None


class OrderCreate(BaseModel):
    """Checkout payload; the items come from the owner's server cart."""

    shipping_address: ShippingAddress
    contact_phone: str = Field(..., pattern=PHONE_PATTERN)
    notes: Optional[str] = Field(default=None, max_length=1000)
    customer_info: Optional[CustomerInfo] = None


class OrderRead(BaseModel):
    order_id: str
    order_number: int
    user_id: str
    items: List[CartItem]
    subtotal: float
    tax_percentage: float
    tax_amount: float
    delivery_fee: float
    total_amount: float
    shipping_address: dict
    contact_phone: str
    notes: Optional[str] = None
    customer_info: Optional[dict] = None
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    updated_by: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_timestamps(cls, value: Any) -> datetime | None:
        return normalize_timestamp(value)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusChangeRead(BaseModel):
    order_id: str
    from_status: OrderStatus
    to_status: OrderStatus
    actor_id: str
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("changed_at", mode="before")
    @classmethod
    def _normalize_changed_at(cls, value: Any) -> datetime | None:
        return normalize_timestamp(value)


class OrderStatusResult(BaseModel):
    order: OrderRead
    applied: bool
    reason: Optional[str] = None
