"""Async HTTP client for the storefront API.

Responses use the ``{"success": ..., "data" | "error": ...}`` envelope; any
non-2xx answer is raised as :class:`StorefrontApiError`.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from app.core.logging import get_logger
from app.schemas.cart import CartItem, CartRead
from app.schemas.order import OrderCreate, OrderRead

logger = get_logger(__name__)


class StorefrontApiError(Exception):
    """Error answer from the API, or the API could not be reached (``status_code`` None)."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or response.reason_phrase)
    return response.reason_phrase


def _item_url(item_id: str) -> str:
    # los ids de producto pueden traer "/", "#" o "?"
    return f"/cart/items/{quote(item_id, safe='')}"


class StorefrontClient:
    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._owns_client = client is None
        self.token = token

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def set_token(self, token: str | None) -> None:
        self.token = token

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        request_headers = dict(headers or {})
        if self.token:
            request_headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = await self._client.request(method, url, json=json, params=params, headers=request_headers)
        except httpx.RequestError as exc:
            logger.warning("Storefront API unreachable", extra={"method": method, "url": url})
            raise StorefrontApiError(f"Storefront API unreachable: {exc}") from exc

        if response.is_error:
            raise StorefrontApiError(_error_message(response), status_code=response.status_code)
        return response

    async def _data(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._request(method, url, **kwargs)
        return response.json().get("data")

    # --- Cart ---
    async def get_cart(self) -> CartRead:
        return CartRead.model_validate(await self._data("GET", "/cart"))

    async def add_item(self, item: CartItem) -> CartRead:
        data = await self._data("POST", "/cart/items", json=item.model_dump(mode="json"))
        return CartRead.model_validate(data)

    async def update_quantity(self, item_id: str, quantity: int) -> CartRead:
        data = await self._data("PUT", _item_url(item_id), json={"quantity": quantity})
        return CartRead.model_validate(data)

    async def remove_item(self, item_id: str) -> CartRead:
        return CartRead.model_validate(await self._data("DELETE", _item_url(item_id)))

    async def clear_cart(self) -> CartRead:
        return CartRead.model_validate(await self._data("DELETE", "/cart"))

    async def replace_cart(self, items: Sequence[CartItem]) -> CartRead:
        payload = {"items": [item.model_dump(mode="json") for item in items]}
        return CartRead.model_validate(await self._data("PUT", "/cart", json=payload))

    # El dueño lo define el token; owner_id solo cumple el contrato del gateway
    async def get(self, owner_id: str) -> CartRead:
        return await self.get_cart()

    async def replace(self, owner_id: str, items: Sequence[CartItem]) -> CartRead:
        return await self.replace_cart(items)

    # --- Orders ---
    async def create_order(
        self,
        payload: OrderCreate,
        *,
        idempotency_key: str | None = None,
    ) -> tuple[OrderRead, bool]:
        """Submit checkout; returns ``(order, created)`` where ``created`` is False on a replay."""
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        response = await self._request(
            "POST",
            "/orders",
            json=payload.model_dump(mode="json", exclude_none=True),
            headers=headers,
        )
        order = OrderRead.model_validate(response.json()["data"])
        return order, response.status_code == httpx.codes.CREATED

    async def list_my_orders(self, *, limit: int = 100, offset: int = 0) -> list[OrderRead]:
        data = await self._data("GET", "/orders/user", params={"limit": limit, "offset": offset})
        return [OrderRead.model_validate(item) for item in data or []]

    async def get_order(self, order_id: str) -> OrderRead:
        return OrderRead.model_validate(await self._data("GET", f"/orders/{quote(order_id, safe='')}"))
