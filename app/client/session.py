"""Cart state for one visitor, anonymous first and authenticated after login.

Mutations go to the local cart while there is no owner and to the server cart
afterwards. Server errors leave the last known good cart in place and are
exposed through ``error``, the way the storefront UI expects.
"""

from __future__ import annotations

import uuid
from typing import Optional

from app.client.api_client import StorefrontApiError, StorefrontClient
from app.client.local_cart import LocalCartStore
from app.client.merge import CartMergeProtocol, MergeResult
from app.core.logging import get_logger
from app.schemas.cart import CartItem, CartRead
from app.schemas.order import OrderCreate, OrderRead

logger = get_logger(__name__)


class CartSession:
    def __init__(self, local: LocalCartStore, client: StorefrontClient) -> None:
        self.local = local
        self.client = client
        self.merge = CartMergeProtocol(local, client)
        self.owner_id: Optional[str] = None
        self.error: Optional[str] = None
        self.cart: CartRead = local.state()
        self._checkout_key: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.owner_id is not None

    @property
    def items(self) -> list[CartItem]:
        return self.cart.items

    @property
    def total(self) -> float:
        return self.cart.total

    async def on_authenticated(self, owner_id: str, token: str) -> MergeResult:
        """Handle the anonymous -> authenticated transition.

        Safe to call every time the login state is observed: only the first
        call per login merges, later ones are no-ops.
        """
        if self.owner_id == owner_id and (self.merge.in_progress or self.merge.has_merged(owner_id)):
            return MergeResult(merged=False, skipped="already_merged")

        self.owner_id = owner_id
        self.client.set_token(token)
        self.error = None
        try:
            result = await self.merge.run(owner_id)
        except StorefrontApiError as exc:
            self.error = "No pudimos sincronizar tu carrito, intenta de nuevo"
            logger.warning("Cart merge failed", extra={"owner_id": owner_id, "status_code": exc.status_code})
            raise

        if result.cart is not None:
            self.cart = result.cart
        else:
            await self.refresh()
        return result

    def on_logout(self) -> None:
        if self.owner_id is not None:
            self.merge.reset(self.owner_id)
        self.owner_id = None
        self.client.set_token(None)
        self._checkout_key = None
        self.error = None
        self.local.load()
        self.cart = self.local.state()

    async def _server_call(self, operation, message: str) -> CartRead:
        self.error = None
        try:
            self.cart = await operation()
        except StorefrontApiError as exc:
            self.error = message
            logger.warning(message, extra={"owner_id": self.owner_id, "status_code": exc.status_code})
        return self.cart

    async def refresh(self) -> CartRead:
        if not self.authenticated:
            self.local.load()
            self.cart = self.local.state()
            return self.cart
        return await self._server_call(self.client.get_cart, "Failed to load cart")

    async def add(self, item: CartItem) -> CartRead:
        if not self.authenticated:
            self.cart = self.local.add(item)
            return self.cart
        return await self._server_call(lambda: self.client.add_item(item), "Failed to add item to cart")

    async def remove(self, item_id: str) -> CartRead:
        if not self.authenticated:
            self.cart = self.local.remove(item_id)
            return self.cart
        return await self._server_call(lambda: self.client.remove_item(item_id), "Failed to remove item from cart")

    async def set_quantity(self, item_id: str, quantity: int) -> CartRead:
        if not self.authenticated:
            self.cart = self.local.set_quantity(item_id, quantity)
            return self.cart
        return await self._server_call(
            lambda: self.client.update_quantity(item_id, quantity), "Failed to update cart item"
        )

    async def clear(self) -> CartRead:
        if not self.authenticated:
            self.cart = self.local.clear()
            return self.cart
        return await self._server_call(self.client.clear_cart, "Failed to clear cart")

    async def checkout(self, payload: OrderCreate) -> OrderRead:
        """Submit the server cart as an order.

        The idempotency key survives a failed attempt, so resubmitting after a
        timeout returns the original order instead of creating a second one.
        """
        if not self.authenticated:
            raise RuntimeError("Checkout requires an authenticated owner")
        if self._checkout_key is None:
            self._checkout_key = uuid.uuid4().hex
        try:
            order, _ = await self.client.create_order(payload, idempotency_key=self._checkout_key)
        except StorefrontApiError as exc:
            if not exc.is_transient:
                self._checkout_key = None
            raise
        self._checkout_key = None
        self.cart = CartRead(owner=self.owner_id, items=[], total=0.0)
        return order
