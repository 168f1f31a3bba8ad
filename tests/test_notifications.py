# tests/test_notifications.py
import pytest
from httpx import AsyncClient

from conftest import API, auth
from app.core.config import settings
from app.services import email_service
from app.services.email_delivery import build_message


@pytest.fixture
def queued(monkeypatch):
    calls = []

    def fake_apply_async(args, kwargs=None, **options):
        calls.append({"to": args[0], "subject": args[1], "body": args[2], **(kwargs or {}), **options})

    monkeypatch.setattr(email_service.send_email_task, "apply_async", fake_apply_async)
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "tienda@example.com")
    return calls


async def _order(client: AsyncClient, token: str) -> dict:
    await client.post(
        f"{API}/cart/items",
        json={"id": "budin", "name": "Budín de limón", "price": 1500, "quantity": 1},
        headers=auth(token),
    )
    resp = await client.post(
        f"{API}/orders",
        json={
            "shipping_address": {"name": "Eva", "address": "Belgrano 55", "city": "Salta"},
            "contact_phone": "3875551111",
            "customer_info": {"email": "eva@example.com"},
        },
        headers=auth(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_checkout_queues_customer_and_admin_emails(client: AsyncClient, user_token: str, queued):
    order = await _order(client, user_token)

    assert [call["to"] for call in queued] == ["eva@example.com", "tienda@example.com"]
    assert all(call["order_id"] == order["order_id"] for call in queued)
    assert all(call["queue"] == settings.EMAIL_QUEUE for call in queued)
    assert "Budín de limón" in queued[0]["body"]


@pytest.mark.asyncio
async def test_status_change_emails_customer(client: AsyncClient, user_token: str, admin_token: str, queued):
    order = await _order(client, user_token)
    queued.clear()

    resp = await client.put(
        f"{API}/orders/{order['order_id']}/status",
        json={"status": "ready"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 200, resp.text
    assert [call["subject"] for call in queued] == [f"Pedido {order['order_id']}: ready"]


@pytest.mark.asyncio
async def test_queue_failure_never_fails_checkout(client: AsyncClient, user_token: str, monkeypatch):
    def broken_apply_async(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(email_service.send_email_task, "apply_async", broken_apply_async)

    order = await _order(client, user_token)
    assert order["order_id"] == "order-00001"


def test_customer_messages_reply_to_the_shop(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "tienda@example.com")

    msg = build_message("eva@example.com", "Pedido", "Hola")

    assert msg["Reply-To"] == "tienda@example.com"
    assert build_message("tienda@example.com", "Nuevo pedido", "x")["Reply-To"] is None
