"""Unique, ordered order identifiers.

The next number comes from ``UPDATE order_counters SET value = value + 1 ...
RETURNING value``. The row lock taken by that statement is held until the
checkout transaction ends, so identifier assignment is serialized across
concurrent checkouts while cart operations are not. The counter row is seeded
from ``max(orders.order_number)`` the first time it is needed, which keeps
numbering continuous for stores that predate the counter table.
"""

from __future__ import annotations

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import get_logger
from app.models.order import Order, OrderCounter

logger = get_logger(__name__)

ORDER_SEQUENCE = "orders"

_counters = OrderCounter.__table__


class CounterSeedConflict(Exception):
    """Another transaction seeded the counter first; the caller must retry."""


def format_order_id(order_number: int) -> str:
    """``7 -> "order-00007"``; numbers wider than the padding are kept whole."""
    if order_number < 1:
        raise ValueError("Order numbers start at 1")
    return f"{settings.ORDER_ID_PREFIX}{order_number:0{settings.ORDER_NUMBER_WIDTH}d}"


async def _increment(db: AsyncSession, name: str) -> int | None:
    stmt = (
        update(_counters)
        .where(_counters.c.name == name)
        .values(value=_counters.c.value + 1)
        .returning(_counters.c.value)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def current_max_order_number(db: AsyncSession) -> int:
    result = await db.execute(select(func.max(Order.order_number)))
    return int(result.scalar() or 0)


async def _seed(db: AsyncSession, name: str) -> None:
    start = await current_max_order_number(db)
    try:
        await db.execute(insert(_counters).values(name=name, value=start))
    except IntegrityError as exc:
        raise CounterSeedConflict(name) from exc
    logger.info("Seeded order counter", extra={"sequence": name, "start": start})


async def next_order_number(db: AsyncSession, name: str = ORDER_SEQUENCE) -> int:
    """Reserve the next order number inside the caller's transaction.

    Must run before the order insert and in the same transaction; the number
    is only consumed if that transaction commits.
    """
    value = await _increment(db, name)
    if value is None:
        await _seed(db, name)
        value = await _increment(db, name)
    if value is None:  # pragma: no cover - the row was just inserted
        raise RuntimeError(f"Order counter {name!r} is missing")
    return int(value)


async def ensure_counter(db: AsyncSession, name: str = ORDER_SEQUENCE) -> int:
    """Create the counter row if needed and return its current value (no increment)."""
    result = await db.execute(select(_counters.c.value).where(_counters.c.name == name))
    value = result.scalar_one_or_none()
    if value is not None:
        return int(value)
    await _seed(db, name)
    return await current_max_order_number(db)
