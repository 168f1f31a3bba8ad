from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import Principal, get_current_owner
from app.db.operations import commit_async
from app.db.session_async import get_async_db
from app.schemas.cart import CartItemCreate, CartItemUpdate, CartRead, CartReplace
from app.schemas.envelope import Envelope, ErrorEnvelope, ok
from app.services import cart_service

router = APIRouter(
    prefix="/cart",
    tags=["cart"],
    responses={401: {"model": ErrorEnvelope}, 422: {"model": ErrorEnvelope}},
)

ItemId = Path(..., min_length=1, max_length=200, description="Referencia del producto en el carrito")


@router.get("", response_model=Envelope[CartRead])
async def get_cart(
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    return ok(await cart_service.get_cart(db, owner.user_id))


@router.post("/items", response_model=Envelope[CartRead], status_code=status.HTTP_201_CREATED)
async def add_cart_item(
    item: CartItemCreate,
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        cart = await cart_service.add_item(db, owner_id=owner.user_id, item=item)
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise
    return ok(cart)


@router.put("/items/{item_id:path}", response_model=Envelope[CartRead])
async def update_cart_item(
    payload: CartItemUpdate,
    item_id: str = ItemId,
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        cart = await cart_service.update_quantity(
            db, owner_id=owner.user_id, item_id=item_id, quantity=payload.quantity
        )
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise
    return ok(cart)


@router.delete("/items/{item_id:path}", response_model=Envelope[CartRead])
async def remove_cart_item(
    item_id: str = ItemId,
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        cart = await cart_service.remove_item(db, owner_id=owner.user_id, item_id=item_id)
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise
    return ok(cart)


@router.put("", response_model=Envelope[CartRead])
async def replace_cart(
    payload: CartReplace,
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        cart = await cart_service.replace_cart(db, owner_id=owner.user_id, items=payload.items)
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise
    return ok(cart)


@router.delete("", response_model=Envelope[CartRead])
async def clear_cart(
    db: AsyncSession = Depends(get_async_db),
    owner: Principal = Depends(get_current_owner),
):
    try:
        cart = await cart_service.clear_cart(db, owner_id=owner.user_id)
        await commit_async(db)
    except Exception:
        await db.rollback()
        raise
    return ok(cart)
