# tests/test_order_status.py
import pytest
from httpx import AsyncClient

from conftest import API, auth, make_token
from app.domain.enums import OrderStatus
from app.domain.order_status import plan_transition
from app.services.exceptions import OrderIntegrityError

NON_TERMINAL = [OrderStatus.pending, OrderStatus.confirmed, OrderStatus.preparing, OrderStatus.ready]
CHECKOUT = {
    "shipping_address": {"name": "Luis", "address": "San Martín 100", "city": "Mendoza"},
    "contact_phone": "2615550000",
    "customer_info": {"email": "luis@example.com"},
}


async def _place_order(client: AsyncClient, token: str) -> str:
    await client.post(
        f"{API}/cart/items",
        json={"id": "medialuna", "name": "Medialuna", "price": 60, "quantity": 12},
        headers=auth(token),
    )
    resp = await client.post(f"{API}/orders", json=CHECKOUT, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["order_id"]


async def _set_status(client: AsyncClient, token: str, order_id: str, status: str):
    return await client.put(f"{API}/orders/{order_id}/status", json={"status": status}, headers=auth(token))


@pytest.mark.parametrize("current", NON_TERMINAL)
def test_cancel_is_applied_from_every_open_state(current):
    decision = plan_transition(current, OrderStatus.cancelled)
    assert decision.applied
    assert decision.from_status == current


@pytest.mark.parametrize("current", [OrderStatus.delivered, OrderStatus.cancelled])
def test_cancel_of_finished_order_is_a_no_op(current):
    decision = plan_transition(current, "cancelled")
    assert not decision.applied
    assert decision.reason == f"already {current.value}"


def test_same_status_is_a_no_op_and_unknown_status_fails():
    assert plan_transition("ready", "ready").reason == "unchanged"
    # el admin puede saltar pasos
    assert plan_transition("pending", "ready").applied
    with pytest.raises(ValueError):
        plan_transition("pending", "baked")


@pytest.mark.asyncio
async def test_status_transitions_record_actor_and_history(client: AsyncClient, user_token: str):
    admin_token = make_token("admin-ops", admin=True)
    order_id = await _place_order(client, user_token)

    for status in ("confirmed", "preparing", "ready", "delivered"):
        resp = await _set_status(client, admin_token, order_id, status)
        assert resp.status_code == 200, resp.text
        result = resp.json()["data"]
        assert result["applied"] is True
        assert result["order"]["status"] == status
        assert result["order"]["updated_by"] == "admin-ops"

    resp = await _set_status(client, admin_token, order_id, "cancelled")
    result = resp.json()["data"]
    assert result["applied"] is False
    assert result["reason"] == "already delivered"
    assert result["order"]["status"] == "delivered"

    resp = await client.get(f"{API}/orders/{order_id}/history", headers=auth(admin_token))
    assert resp.status_code == 200, resp.text
    history = resp.json()["data"]
    assert [(h["from_status"], h["to_status"]) for h in history] == [
        ("pending", "confirmed"),
        ("confirmed", "preparing"),
        ("preparing", "ready"),
        ("ready", "delivered"),
    ]
    assert {h["actor_id"] for h in history} == {"admin-ops"}
    assert all(h["changed_at"] for h in history)

    # el cliente ve el estado actualizado y el snapshot intacto
    order = (await client.get(f"{API}/orders/{order_id}", headers=auth(user_token))).json()["data"]
    assert order["status"] == "delivered"
    assert order["total_amount"] == 720


@pytest.mark.asyncio
async def test_cancelling_twice_records_a_single_change(client: AsyncClient, user_token: str, admin_token: str):
    order_id = await _place_order(client, user_token)

    first = (await _set_status(client, admin_token, order_id, "cancelled")).json()["data"]
    second = (await _set_status(client, admin_token, order_id, "cancelled")).json()["data"]

    assert first["applied"] is True
    assert second["applied"] is False
    assert second["reason"] == "already cancelled"
    history = (await client.get(f"{API}/orders/{order_id}/history", headers=auth(admin_token))).json()["data"]
    assert len(history) == 1


@pytest.mark.asyncio
async def test_unknown_status_and_missing_order(client: AsyncClient, user_token: str, admin_token: str):
    order_id = await _place_order(client, user_token)

    resp = await _set_status(client, admin_token, order_id, "baked")
    assert resp.status_code == 422
    assert resp.json()["success"] is False

    resp = await _set_status(client, admin_token, "order-99999", "confirmed")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_committed_snapshot_cannot_be_mutated(client: AsyncClient, user_token: str, async_db_session):
    from app.services.order_service import get_order

    order_id = await _place_order(client, user_token)
    order = await get_order(async_db_session, order_id)

    order.total_amount = 1
    with pytest.raises(OrderIntegrityError):
        await async_db_session.flush()
