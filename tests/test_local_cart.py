# tests/test_local_cart.py
import json

from app.client.local_cart import JsonFileStorage, LocalCartStore, MemoryStorage
from app.domain.enums import CartOwnerKind
from app.schemas.cart import CartItem

MACARON = CartItem(id="macaron", name="Macaron", price=120, quantity=2)
BROWNIE = CartItem(id="brownie", name="Brownie", price=300, quantity=1)


def test_mutations_persist_immediately(tmp_path):
    path = tmp_path / "cart.json"
    store = LocalCartStore(JsonFileStorage(path))

    store.add(MACARON)
    store.add(BROWNIE)
    store.add(MACARON.model_copy(update={"quantity": 1}))
    state = store.set_quantity("brownie", 4)

    assert state.owner_kind == CartOwnerKind.anonymous
    assert state.total == 120 * 3 + 300 * 4

    # recarga de página
    reloaded = LocalCartStore(JsonFileStorage(path))
    assert [(i.id, i.quantity) for i in reloaded.items] == [("macaron", 3), ("brownie", 4)]
    assert reloaded.total == state.total
    assert reloaded.token == store.token
    assert reloaded.updated_at is not None


def test_set_quantity_zero_removes_and_missing_id_is_ignored():
    store = LocalCartStore(MemoryStorage())
    store.add(MACARON)

    assert store.set_quantity("no-existe", 3).items == store.items
    assert store.set_quantity("macaron", 0).items == []
    assert store.is_empty


def test_clear_keeps_session_token():
    storage = MemoryStorage()
    store = LocalCartStore(storage)
    store.add(BROWNIE)
    token = store.token

    store.clear()

    assert store.is_empty
    assert json.loads(storage.data)["token"] == token


def test_malformed_storage_loads_as_empty_cart():
    for raw in ("{not json", json.dumps({"items": [{"id": "x", "quantity": "muchos"}]}), json.dumps([1, 2])):
        store = LocalCartStore(MemoryStorage(raw))
        assert store.items == []
        assert store.total == 0

        # la sesión sigue funcionando
        assert store.add(MACARON).total == 240


def test_legacy_timestamps_are_normalized():
    raw = json.dumps(
        {
            "token": "anon-1",
            "items": [MACARON.model_dump()],
            "updated_at": {"_seconds": 1700000000, "_nanoseconds": 0},
        }
    )
    store = LocalCartStore(MemoryStorage(raw))

    assert store.token == "anon-1"
    assert store.updated_at.tzinfo is not None
    assert int(store.updated_at.timestamp()) == 1700000000


def test_missing_file_is_an_empty_cart(tmp_path):
    store = LocalCartStore(JsonFileStorage(tmp_path / "nested" / "cart.json"))
    assert store.items == []

    store.add(BROWNIE)
    assert (tmp_path / "nested" / "cart.json").exists()
    assert list((tmp_path / "nested").iterdir()) == [tmp_path / "nested" / "cart.json"]
