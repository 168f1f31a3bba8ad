from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Principal, get_current_admin, get_current_owner, get_idempotency_key
from app.db.operations import commit_async
from app.db.session_async import get_async_db
from app.domain.enums import OrderStatus
from app.schemas.envelope import Envelope, ErrorEnvelope, ok
from app.schemas.order import (
    OrderCreate,
    OrderRead,
    OrderStatusChangeRead,
    OrderStatusResult,
    OrderStatusUpdate,
)
from app.services import notification_service, order_service

router = APIRouter(
    prefix="/orders",
    tags=["orders"],
    responses={
        401: {"model": ErrorEnvelope},
        404: {"model": ErrorEnvelope},
        409: {"model": ErrorEnvelope},
        422: {"model": ErrorEnvelope},
    },
)


@router.post("", response_model=Envelope[OrderRead], status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    response: Response,
    idempotency_key: Optional[str] = Depends(get_idempotency_key),
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        order, created = await order_service.create_order(
            db,
            user_id=owner.user_id,
            payload=payload,
            idempotency_key=idempotency_key,
        )
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise

    if created:
        notification_service.notify_order_created(order)
    else:
        response.status_code = status.HTTP_200_OK
    return ok(order)


@router.get("/user", response_model=Envelope[List[OrderRead]])
async def list_my_orders(
    limit: int = Query(default=100, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    orders = await order_service.list_user_orders(db, owner.user_id, limit=limit, offset=offset)
    return ok([OrderRead.model_validate(order) for order in orders])


@router.get("/all", response_model=Envelope[List[OrderRead]])
async def list_all_orders(
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_db),
    admin: Principal = Depends(get_current_admin),
):
    orders = await order_service.list_orders(db, status_filter=status_filter, limit=limit, offset=offset)
    return ok([OrderRead.model_validate(order) for order in orders])


@router.get("/{order_id}", response_model=Envelope[OrderRead])
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    order = await order_service.get_order(db, order_id)
    if order.user_id != owner.user_id and not owner.is_admin:
        # no revelamos si la orden existe
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Order not found")
    return ok(OrderRead.model_validate(order))


@router.put("/{order_id}/status", response_model=Envelope[OrderStatusResult])
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    admin: Principal = Depends(get_current_admin),
):
    try:
        order, decision = await order_service.update_status(
            db,
            order_id=order_id,
            target=payload.status,
            actor_id=admin.user_id,
        )
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise

    result = OrderStatusResult(
        order=OrderRead.model_validate(order),
        applied=decision.applied,
        reason=decision.reason,
    )
    if decision.applied:
        notification_service.notify_order_status(result.order)
    return ok(result)


@router.get("/{order_id}/history", response_model=Envelope[List[OrderStatusChangeRead]])
async def get_order_history(
    order_id: str,
    db: AsyncSession = Depends(get_async_db),
    admin: Principal = Depends(get_current_admin),
):
    changes = await order_service.list_status_changes(db, order_id)
    return ok([OrderStatusChangeRead.model_validate(change) for change in changes])
