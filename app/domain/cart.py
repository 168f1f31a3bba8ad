"""Cart arithmetic shared by the local (anonymous) and server cart stores.

Every function returns a new list of copied items; inputs are never mutated,
so callers can keep a previous list as last-known-good state.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.schemas.cart import CartItem


def copy_items(items: Iterable[CartItem]) -> list[CartItem]:
    return [item.model_copy(deep=True) for item in items]


def compute_total(items: Iterable[CartItem]) -> float:
    return round(sum(item.price * item.quantity for item in items), 2)


def find_item(items: Iterable[CartItem], item_id: str) -> CartItem | None:
    return next((item for item in items if item.id == item_id), None)


def add_item(items: Iterable[CartItem], new_item: CartItem) -> list[CartItem]:
    """Append ``new_item`` or increment the quantity of the line with the same id."""
    result = copy_items(items)
    existing = find_item(result, new_item.id)
    if existing is not None:
        existing.quantity += new_item.quantity
        return result
    result.append(new_item.model_copy(deep=True))
    return result


def remove_item(items: Iterable[CartItem], item_id: str) -> list[CartItem]:
    return [item.model_copy(deep=True) for item in items if item.id != item_id]


def set_quantity(items: Iterable[CartItem], item_id: str, quantity: int) -> list[CartItem]:
    """Set the quantity of ``item_id``; ``quantity <= 0`` removes the line.

    Raises ``KeyError`` when a positive quantity targets an id not in the cart.
    """
    if quantity <= 0:
        return remove_item(items, item_id)

    result = copy_items(items)
    existing = find_item(result, item_id)
    if existing is None:
        raise KeyError(item_id)
    existing.quantity = quantity
    return result


def merge_items(server_items: Iterable[CartItem], local_items: Iterable[CartItem]) -> list[CartItem]:
    """Fold the anonymous cart into the server cart.

    Matching ids get ``server + local`` quantities, new ids are appended with
    their local quantity. Server lines keep their position, so the result does
    not depend on the order in which local lines are processed.
    """
    merged = copy_items(server_items)
    for local in local_items:
        merged = add_item(merged, local)
    return merged


def subtract_items(items: Iterable[CartItem], taken: Iterable[CartItem]) -> list[CartItem]:
    """Take the quantities in ``taken`` out of ``items``; lines that reach zero are dropped."""
    remaining = copy_items(items)
    for line in taken:
        existing = find_item(remaining, line.id)
        if existing is None:
            continue
        if existing.quantity <= line.quantity:
            remaining = remove_item(remaining, line.id)
        else:
            existing.quantity -= line.quantity
    return remaining
