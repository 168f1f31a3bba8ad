from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from sqlalchemy import event, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger, integrity_alert
from app.core.metrics import record_order_created, record_status_transition
from app.domain.cart import copy_items
from app.domain.enums import OrderStatus
from app.domain.order_status import INITIAL_STATUS, TransitionDecision, plan_transition
from app.models.order import Order, OrderStatusChange
from app.schemas.order import OrderCreate, OrderRead
from app.services import cart_service
from app.services.exceptions import (
    ConflictError,
    DomainValidationError,
    EmptyCartError,
    OrderIntegrityError,
    ResourceNotFoundError,
)
from app.services.order_sequencer import CounterSeedConflict, format_order_id, next_order_number
from app.services.pricing import calculate_order_totals

logger = get_logger(__name__)

_MAX_CREATE_ATTEMPTS = 3
IMMUTABLE_ORDER_FIELDS = (
    "order_id",
    "order_number",
    "user_id",
    "items",
    "subtotal",
    "tax_percentage",
    "tax_amount",
    "delivery_fee",
    "total_amount",
)


@event.listens_for(Order, "before_update")
def _guard_order_snapshot(mapper, connection, target: Order) -> None:
    state = inspect(target)
    changed = [name for name in IMMUTABLE_ORDER_FIELDS if state.attrs[name].history.has_changes()]
    if changed:
        integrity_alert("Attempt to mutate committed order", order_id=target.order_id, fields=changed)
        raise OrderIntegrityError(f"Order fields are immutable: {', '.join(changed)}", order_id=target.order_id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _find_by_idempotency_key(db: AsyncSession, user_id: str, key: str) -> Order | None:
    stmt = select(Order).where(Order.user_id == user_id, Order.idempotency_key == key)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _create_order_once(
    db: AsyncSession,
    *,
    user_id: str,
    payload: OrderCreate,
    idempotency_key: str | None,
) -> tuple[OrderRead, bool]:
    if idempotency_key:
        existing = await _find_by_idempotency_key(db, user_id, idempotency_key)
        if existing is not None:
            logger.info("Idempotent checkout replay", extra={"order_id": existing.order_id, "user_id": user_id})
            return OrderRead.model_validate(existing), False

    cart = await cart_service.get_cart(db, user_id)
    if not cart.items:
        raise EmptyCartError("Order items are required")

    # Copia profunda: mutaciones posteriores del carrito no tocan la orden
    snapshot = copy_items(cart.items)
    totals = calculate_order_totals(snapshot)

    order_number = await next_order_number(db)
    order_id = format_order_id(order_number)
    now = _utcnow()
    order = Order(
        order_id=order_id,
        order_number=order_number,
        user_id=user_id,
        items=[item.model_dump(mode="json") for item in snapshot],
        subtotal=totals.subtotal,
        tax_percentage=totals.tax_percentage,
        tax_amount=totals.tax_amount,
        delivery_fee=totals.delivery_fee,
        total_amount=totals.total_amount,
        shipping_address=payload.shipping_address.model_dump(mode="json"),
        contact_phone=payload.contact_phone,
        notes=payload.notes,
        customer_info=payload.customer_info.model_dump(mode="json") if payload.customer_info else None,
        status=INITIAL_STATUS,
        idempotency_key=idempotency_key,
        created_at=now,
        updated_at=now,
        updated_by=None,
    )
    db.add(order)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if idempotency_key:
            existing = await _find_by_idempotency_key(db, user_id, idempotency_key)
            if existing is not None:
                logger.info("Concurrent idempotent checkout resolved", extra={"order_id": existing.order_id})
                return OrderRead.model_validate(existing), False
        record_order_created("integrity_error")
        integrity_alert(
            "Order identifier collision; checkout aborted",
            order_id=order_id,
            order_number=order_number,
            user_id=user_id,
        )
        raise OrderIntegrityError(
            f"Order identifier {order_id} already exists",
            order_id=order_id,
            order_number=order_number,
        ) from exc

    await cart_service.clear_cart(db, owner_id=user_id)
    record_order_created("created")
    logger.info(
        "Order created",
        extra={"order_id": order_id, "user_id": user_id, "total_amount": totals.total_amount},
    )
    return OrderRead.model_validate(order), True


async def create_order(
    db: AsyncSession,
    *,
    user_id: str,
    payload: OrderCreate,
    idempotency_key: str | None = None,
) -> tuple[OrderRead, bool]:
    """Commit the owner's server cart as an order; returns ``(order, created)``.

    The order insert and the cart clear share the caller's transaction, so the
    cart is only emptied when the order commits. A replayed ``idempotency_key``
    returns the existing order with ``created=False``.
    """
    if idempotency_key is not None:
        idempotency_key = idempotency_key.strip()
        if not idempotency_key or len(idempotency_key) > 128:
            raise DomainValidationError("Idempotency key must be 1-128 characters")

    for _ in range(_MAX_CREATE_ATTEMPTS):
        try:
            return await _create_order_once(
                db,
                user_id=user_id,
                payload=payload,
                idempotency_key=idempotency_key,
            )
        except CounterSeedConflict:
            await db.rollback()
    raise ConflictError("Could not allocate an order number, please retry")


async def get_order(db: AsyncSession, order_id: str, *, for_update: bool = False) -> Order:
    stmt = select(Order).where(Order.order_id == order_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    order = result.scalar_one_or_none()
    if not order:
        raise ResourceNotFoundError("Order not found")
    return order


async def list_user_orders(db: AsyncSession, user_id: str, *, limit: int = 100, offset: int = 0) -> List[Order]:
    stmt = (
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.order_number.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    *,
    status_filter: OrderStatus | None = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Order]:
    stmt = select(Order).order_by(Order.order_number.desc()).offset(offset).limit(limit)
    if status_filter:
        stmt = stmt.where(Order.status == status_filter)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def update_status(
    db: AsyncSession,
    *,
    order_id: str,
    target: OrderStatus,
    actor_id: str,
) -> tuple[Order, TransitionDecision]:
    """Apply an admin status change, recording actor and timestamp.

    No-ops (same status, cancelling a delivered or cancelled order) leave the
    order and its history untouched.
    """
    if not actor_id:
        raise DomainValidationError("An actor is required for status changes")

    order = await get_order(db, order_id, for_update=True)
    decision = plan_transition(order.status, target)
    if not decision.applied:
        logger.info(
            "Order status change skipped",
            extra={"order_id": order_id, "status": order.status.value, "reason": decision.reason},
        )
        return order, decision

    now = _utcnow()
    order.status = decision.to_status
    order.updated_at = now
    order.updated_by = actor_id
    db.add(
        OrderStatusChange(
            order_id=order.order_id,
            from_status=decision.from_status,
            to_status=decision.to_status,
            actor_id=actor_id,
            changed_at=now,
        )
    )
    await db.flush()
    record_status_transition(decision.to_status.value)
    logger.info(
        "Order status changed",
        extra={
            "order_id": order_id,
            "from_status": decision.from_status.value,
            "to_status": decision.to_status.value,
            "actor_id": actor_id,
        },
    )
    return order, decision


async def list_status_changes(db: AsyncSession, order_id: str) -> List[OrderStatusChange]:
    await get_order(db, order_id)
    stmt = (
        select(OrderStatusChange)
        .where(OrderStatusChange.order_id == order_id)
        .order_by(OrderStatusChange.id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
