# tests/test_cart.py
import httpx
import pytest
from httpx import AsyncClient

from conftest import API, auth
from app.client import StorefrontClient
from app.main import app
from app.schemas.cart import CartItem

CUPCAKE = {
    "id": "cupcake-vainilla",
    "name": "Cupcake de vainilla",
    "price": 250,
    "quantity": 2,
    "image": "/img/cupcake.png",
    "customizations": {"flavor": "vainilla", "decoration": ""},
}
TORTA = {"id": "torta-chocolate", "name": "Torta de chocolate", "price": 1800.5, "quantity": 1}


def _cart(resp) -> dict:
    body = resp.json()
    assert body["success"] is True, body
    return body["data"]


@pytest.mark.asyncio
async def test_get_cart_without_document_is_empty(client: AsyncClient, user_token: str, user_id: str):
    resp = await client.get(f"{API}/cart", headers=auth(user_token))
    assert resp.status_code == 200, resp.text
    cart = _cart(resp)
    assert cart["owner"] == user_id
    assert cart["items"] == []
    assert cart["total"] == 0


@pytest.mark.asyncio
async def test_cart_flow_authenticated(client: AsyncClient, user_token: str):
    headers = auth(user_token)

    resp = await client.post(f"{API}/cart/items", json=CUPCAKE, headers=headers)
    assert resp.status_code == 201, resp.text
    cart = _cart(resp)
    assert cart["total"] == 500
    # customizaciones vacías se descartan
    assert cart["items"][0]["customizations"] == {"flavor": "vainilla"}

    # mismo id: suma cantidades, no duplica la línea
    resp = await client.post(f"{API}/cart/items", json={**CUPCAKE, "quantity": 1}, headers=headers)
    cart = _cart(resp)
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3

    resp = await client.post(f"{API}/cart/items", json=TORTA, headers=headers)
    cart = _cart(resp)
    assert [item["id"] for item in cart["items"]] == ["cupcake-vainilla", "torta-chocolate"]
    assert cart["total"] == pytest.approx(250 * 3 + 1800.5)

    resp = await client.put(f"{API}/cart/items/torta-chocolate", json={"quantity": 4}, headers=headers)
    assert resp.status_code == 200, resp.text
    cart = _cart(resp)
    assert cart["total"] == pytest.approx(sum(i["price"] * i["quantity"] for i in cart["items"]))

    resp = await client.delete(f"{API}/cart/items/cupcake-vainilla", headers=headers)
    cart = _cart(resp)
    assert [item["id"] for item in cart["items"]] == ["torta-chocolate"]

    resp = await client.get(f"{API}/cart", headers=headers)
    assert _cart(resp)["items"][0]["quantity"] == 4

    resp = await client.delete(f"{API}/cart", headers=headers)
    cart = _cart(resp)
    assert cart["items"] == []
    assert cart["total"] == 0


@pytest.mark.asyncio
async def test_update_quantity_zero_removes_item(client: AsyncClient, user_token: str):
    headers = auth(user_token)
    await client.post(f"{API}/cart/items", json=CUPCAKE, headers=headers)
    await client.post(f"{API}/cart/items", json=TORTA, headers=headers)

    resp = await client.put(f"{API}/cart/items/cupcake-vainilla", json={"quantity": 0}, headers=headers)
    assert resp.status_code == 200, resp.text
    cart = _cart(resp)
    assert [item["id"] for item in cart["items"]] == ["torta-chocolate"]
    assert cart["total"] == pytest.approx(1800.5)

    resp = await client.put(f"{API}/cart/items/torta-chocolate", json={"quantity": -3}, headers=headers)
    assert _cart(resp)["items"] == []


@pytest.mark.asyncio
async def test_update_missing_item_is_not_found(client: AsyncClient, user_token: str):
    resp = await client.put(f"{API}/cart/items/no-existe", json={"quantity": 2}, headers=auth(user_token))
    assert resp.status_code == 404, resp.text
    assert resp.json() == {"success": False, "error": "Item not found in cart"}


@pytest.mark.asyncio
async def test_remove_missing_item_returns_cart(client: AsyncClient, user_token: str):
    headers = auth(user_token)
    await client.post(f"{API}/cart/items", json=TORTA, headers=headers)

    resp = await client.delete(f"{API}/cart/items/no-existe", headers=headers)
    assert resp.status_code == 200, resp.text
    assert len(_cart(resp)["items"]) == 1


@pytest.mark.asyncio
async def test_replace_cart_overwrites_document(client: AsyncClient, user_token: str):
    headers = auth(user_token)
    await client.post(f"{API}/cart/items", json=CUPCAKE, headers=headers)

    resp = await client.put(f"{API}/cart", json={"items": [TORTA]}, headers=headers)
    assert resp.status_code == 200, resp.text
    cart = _cart(resp)
    assert [item["id"] for item in cart["items"]] == ["torta-chocolate"]

    resp = await client.put(f"{API}/cart", json={"items": [TORTA, TORTA]}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["success"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "Sin id", "price": 10, "quantity": 1},
        {"id": "x", "name": "Precio negativo", "price": -1, "quantity": 1},
        {"id": "x", "name": "Cantidad cero", "price": 10, "quantity": 0},
    ],
)
async def test_add_item_rejects_invalid_payload(client: AsyncClient, user_token: str, payload: dict):
    resp = await client.post(f"{API}/cart/items", json=payload, headers=auth(user_token))
    assert resp.status_code == 422
    body = resp.json()
    assert body["success"] is False
    assert body["error"]


@pytest.mark.asyncio
async def test_carts_are_isolated_per_owner(client: AsyncClient, user_token: str, other_user_token: str):
    await client.post(f"{API}/cart/items", json=CUPCAKE, headers=auth(user_token))

    resp = await client.get(f"{API}/cart", headers=auth(other_user_token))
    assert _cart(resp)["items"] == []


@pytest.mark.asyncio
async def test_cart_requires_token(client: AsyncClient):
    resp = await client.get(f"{API}/cart")
    assert resp.status_code == 401
    assert resp.json()["success"] is False

    resp = await client.get(f"{API}/cart", headers=auth("not-a-jwt"))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_item_ids_with_url_characters_round_trip(user_token: str):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=f"http://test{API}") as http:
        api = StorefrontClient(f"http://test{API}", token=user_token, client=http)
        await api.add_item(CartItem(id="a", name="Alfajor", price=100, quantity=1))
        for item_id in ("a/b", "a#b", "a?b"):
            await api.add_item(CartItem(id=item_id, name=item_id, price=10, quantity=1))

        cart = await api.update_quantity("a/b", 4)
        assert {i.id: i.quantity for i in cart.items}["a/b"] == 4

        for item_id in ("a#b", "a?b", "a/b"):
            cart = await api.remove_item(item_id)
            assert item_id not in [i.id for i in cart.items]

        # la línea "a" no se toca al borrar ids que empiezan igual
        assert [(i.id, i.quantity) for i in cart.items] == [("a", 1)]


@pytest.mark.asyncio
async def test_item_path_accepts_encoded_slash(client: AsyncClient, user_token: str):
    await client.post(
        f"{API}/cart/items",
        json={"id": "tarta/chocolate", "name": "Tarta", "price": 900, "quantity": 1},
        headers=auth(user_token),
    )

    resp = await client.put(f"{API}/cart/items/tarta%2Fchocolate", json={"quantity": 2}, headers=auth(user_token))
    assert _cart(resp)["items"][0]["quantity"] == 2

    resp = await client.delete(f"{API}/cart/items/tarta%2Fchocolate", headers=auth(user_token))
    assert _cart(resp)["items"] == []
