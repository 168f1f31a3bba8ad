# app/schemas/cart.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.enums import CartOwnerKind
from app.domain.timestamps import normalize_timestamp


class CartItem(BaseModel):
    """A line in a cart; ``id`` is the product reference and is unique per cart."""

    id: str = Field(..., min_length=1, max_length=200)
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    image: str = Field(default="", max_length=1000)
    # size / flavor / decoration, libre
    customizations: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("image", mode="before")
    @classmethod
    def _image_default(cls, value: Any) -> Any:
        return value or ""

    @field_validator("customizations", mode="before")
    @classmethod
    def _drop_empty_customizations(cls, value: Any) -> Any:
        if not value:
            return {}
        if isinstance(value, dict):
            return {str(key): str(val) for key, val in value.items() if val not in (None, "")}
        return value


class CartItemCreate(CartItem):
    pass


class CartItemUpdate(BaseModel):
    # 0 o negativo elimina la linea
    quantity: int


class CartReplace(BaseModel):
    items: List[CartItem] = Field(default_factory=list)


class CartRead(BaseModel):
    owner: str
    owner_kind: CartOwnerKind = CartOwnerKind.user
    items: List[CartItem] = Field(default_factory=list)
    total: float = 0.0
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("updated_at", mode="before")
    @classmethod
    def _normalize_updated_at(cls, value: Any) -> datetime | None:
        return normalize_timestamp(value)
