# app/schemas/envelope.py
from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Every response is shaped ``{"success": bool, "data" | "error": ...}``."""

    success: bool = True
    data: T


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str


def ok(data: T) -> Envelope[T]:
    return Envelope(data=data)
