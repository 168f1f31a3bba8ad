"""Server cart store: one cart document per authenticated owner.

Every mutation is a read-modify-write of the owner's document followed by a
single upsert. There is no cross-operation transaction: two sessions writing
the same owner's cart concurrently resolve as last-write-wins on the whole
document. That weakness is accepted; callers that need stronger guarantees
(the merge protocol) write the full cart in one ``replace_cart`` call.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.metrics import record_cart_write
from app.db.session_async import run_in_transaction
from app.domain import cart as cart_rules
from app.domain.enums import CartOwnerKind
from app.models.cart import CartDocument
from app.schemas.cart import CartItem, CartRead
from app.services.exceptions import DomainValidationError, ResourceNotFoundError

logger = get_logger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_items(owner_id: str, raw_items: Iterable[dict] | None) -> list[CartItem]:
    items: list[CartItem] = []
    seen: set[str] = set()
    for raw in raw_items or []:
        try:
            item = CartItem.model_validate(raw)
        except ValidationError:
            logger.warning("Skipping malformed cart line", extra={"owner_id": owner_id, "line": raw})
            continue
        if item.id in seen:
            items = cart_rules.add_item(items, item)
            continue
        seen.add(item.id)
        items.append(item)
    return items


def _to_read(owner_id: str, items: Sequence[CartItem], updated_at: datetime | None) -> CartRead:
    return CartRead(
        owner=owner_id,
        owner_kind=CartOwnerKind.user,
        items=cart_rules.copy_items(items),
        total=cart_rules.compute_total(items),
        updated_at=updated_at,
    )


def _require_owner(owner_id: str) -> str:
    if not owner_id or not str(owner_id).strip():
        raise DomainValidationError("An authenticated owner is required")
    return str(owner_id)


async def _load_document(db: AsyncSession, owner_id: str) -> CartDocument | None:
    stmt = (
        select(CartDocument)
        .where(CartDocument.owner_id == owner_id)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _load_items(db: AsyncSession, owner_id: str) -> list[CartItem]:
    document = await _load_document(db, owner_id)
    if document is None:
        return []
    return _parse_items(owner_id, document.items)


async def _write_document(db: AsyncSession, owner_id: str, items: Sequence[CartItem], operation: str) -> CartRead:
    """Upsert the whole document; the last writer wins."""
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RuntimeError(f"Cart documents are not supported on dialect {dialect!r}")

    now = _utcnow()
    payload = [item.model_dump(mode="json") for item in items]
    total = cart_rules.compute_total(items)
    stmt = insert(CartDocument).values(
        owner_id=owner_id,
        items=payload,
        total=total,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[CartDocument.owner_id],
        set_={"items": payload, "total": total, "updated_at": now},
    )
    await db.execute(stmt)
    record_cart_write(operation)
    return _to_read(owner_id, items, now)


async def get_cart(db: AsyncSession, owner_id: str) -> CartRead:
    """Return the owner's cart; a missing document is an empty cart, not an error."""
    owner_id = _require_owner(owner_id)
    document = await _load_document(db, owner_id)
    if document is None:
        return _to_read(owner_id, [], None)
    items = _parse_items(owner_id, document.items)
    return _to_read(owner_id, items, document.updated_at)


async def add_item(db: AsyncSession, *, owner_id: str, item: CartItem) -> CartRead:
    owner_id = _require_owner(owner_id)
    items = await _load_items(db, owner_id)
    return await _write_document(db, owner_id, cart_rules.add_item(items, item), "add_item")


async def update_quantity(db: AsyncSession, *, owner_id: str, item_id: str, quantity: int) -> CartRead:
    """Set a line's quantity; ``quantity <= 0`` removes it like ``remove_item``."""
    owner_id = _require_owner(owner_id)
    items = await _load_items(db, owner_id)
    try:
        updated = cart_rules.set_quantity(items, item_id, quantity)
    except KeyError:
        raise ResourceNotFoundError("Item not found in cart") from None
    return await _write_document(db, owner_id, updated, "update_quantity")


async def remove_item(db: AsyncSession, *, owner_id: str, item_id: str) -> CartRead:
    owner_id = _require_owner(owner_id)
    items = await _load_items(db, owner_id)
    return await _write_document(db, owner_id, cart_rules.remove_item(items, item_id), "remove_item")


async def clear_cart(db: AsyncSession, *, owner_id: str) -> CartRead:
    owner_id = _require_owner(owner_id)
    return await _write_document(db, owner_id, [], "clear")


async def replace_cart(db: AsyncSession, *, owner_id: str, items: Sequence[CartItem]) -> CartRead:
    """Overwrite the owner's cart with ``items`` in a single write."""
    owner_id = _require_owner(owner_id)
    ids = [item.id for item in items]
    if len(ids) != len(set(ids)):
        raise DomainValidationError("Duplicate item ids in cart")
    return await _write_document(db, owner_id, cart_rules.copy_items(items), "replace")


class SessionCartGateway:
    """Server cart access for in-process callers, one transaction per call."""

    async def get(self, owner_id: str) -> CartRead:
        return await run_in_transaction(lambda db: get_cart(db, owner_id))

    async def replace(self, owner_id: str, items: Sequence[CartItem]) -> CartRead:
        return await run_in_transaction(lambda db: replace_cart(db, owner_id=owner_id, items=items))
