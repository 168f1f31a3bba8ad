from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel

from app.core.config import settings
from app.domain.cart import compute_total
from app.schemas.cart import CartItem


class OrderTotals(BaseModel):
    subtotal: float
    tax_percentage: float
    tax_amount: float
    delivery_fee: float
    total_amount: float


def calculate_order_totals(
    items: Iterable[CartItem],
    *,
    tax_percentage: float | None = None,
    delivery_fee: float | None = None,
) -> OrderTotals:
    """Subtotal, tax and flat delivery fee for a checkout snapshot."""
    rate = settings.TAX_PERCENTAGE if tax_percentage is None else tax_percentage
    fee = settings.DELIVERY_FEE if delivery_fee is None else delivery_fee

    subtotal = compute_total(items)
    tax_amount = round(subtotal * rate, 2)
    return OrderTotals(
        subtotal=subtotal,
        tax_percentage=rate,
        tax_amount=tax_amount,
        delivery_fee=round(fee, 2),
        total_amount=round(subtotal + tax_amount + fee, 2),
    )
