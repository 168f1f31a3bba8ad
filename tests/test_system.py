# tests/test_system.py
import logging
from types import SimpleNamespace

import pytest
from httpx import AsyncClient
from starlette.routing import Route

from conftest import API, auth
from app.core.logging import JsonFormatter
from app.core.metrics import normalize_path


@pytest.mark.asyncio
async def test_health_and_request_id(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    assert resp.headers["X-Request-ID"]

    resp = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_metrics_exposes_request_and_cart_counters(client: AsyncClient, user_token: str):
    await client.get(f"{API}/cart", headers=auth(user_token))
    await client.post(
        f"{API}/cart/items",
        json={"id": "pan", "name": "Pan", "price": 10, "quantity": 1},
        headers=auth(user_token),
    )

    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "bakery_http_requests_total" in resp.text
    assert 'path="/api/v1/cart"' in resp.text
    assert 'bakery_cart_writes_total{operation="add_item"}' in resp.text


@pytest.mark.asyncio
async def test_client_errors_are_logged_with_context(client: AsyncClient, caplog):
    with caplog.at_level(logging.WARNING, logger="app.requests"):
        await client.get(f"{API}/cart")

    record = next(r for r in caplog.records if r.name == "app.requests")
    assert record.status_code == 401
    assert record.path == "/api/v1/cart"


def test_json_formatter_includes_extras():
    record = logging.makeLogRecord({"name": "app.integrity", "levelname": "ERROR", "msg": "collision"})
    record.order_id = "order-00001"

    formatted = JsonFormatter().format(record)

    assert '"order_id": "order-00001"' in formatted
    assert '"message": "collision"' in formatted


def _request(route_path: str | None, path: str, root_path: str = ""):
    scope = {"path": path, "root_path": root_path}
    if route_path is not None:
        scope["route"] = Route(route_path, endpoint=lambda request: None)
    return SimpleNamespace(scope=scope, url=SimpleNamespace(path=path))


@pytest.mark.parametrize(
    "route_path, path, root_path",
    [
        # rutas registradas con el prefijo completo
        ("/api/v1/cart/items/{item_id:path}", "/api/v1/cart/items/pan", ""),
        # rutas relativas a un router incluido, con el prefijo en root_path
        ("/cart/items/{item_id:path}", "/api/v1/cart/items/pan", "/api/v1"),
        ("/items/{item_id:path}", "/api/v1/cart/items/pan", "/api/v1/cart"),
    ],
)
def test_metric_path_is_the_full_route_template(route_path, path, root_path):
    assert normalize_path(_request(route_path, path, root_path)) == "/api/v1/cart/items/{item_id:path}"


def test_metric_path_falls_back_to_the_raw_path():
    assert normalize_path(_request(None, "/favicon.ico")) == "/favicon.ico"
    assert normalize_path(_request("/items/{item_id}", "/api/v1/cart/items/pan")) == "/api/v1/cart/items/pan"
