"""Anonymous cart kept on the visitor's device.

Synchronous and offline. Every mutation persists the whole document right
away so a reload finds the same cart. Unreadable or malformed storage is
treated as an empty cart; it is logged, never raised.
"""

from __future__ import annotations

import json
import os
import tempfile
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

from app.core.logging import get_logger
from app.domain import cart as cart_rules
from app.domain.enums import CartOwnerKind
from app.domain.timestamps import normalize_timestamp, utcnow
from app.schemas.cart import CartItem, CartRead

logger = get_logger(__name__)


class CartStorage(Protocol):
    def read(self) -> str | None: ...

    def write(self, data: str) -> None: ...


class MemoryStorage:
    """In-process storage, used in tests and short-lived sessions."""

    def __init__(self, data: str | None = None) -> None:
        self.data = data

    def read(self) -> str | None:
        return self.data

    def write(self, data: str) -> None:
        self.data = data


class JsonFileStorage:
    """JSON document on disk, replaced atomically on every write."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, data: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class LocalCartDocument(BaseModel):
    token: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @field_validator("updated_at", mode="before")
    @classmethod
    def _normalize_updated_at(cls, value: Any) -> datetime | None:
        return normalize_timestamp(value)


class LocalCartStore:
    def __init__(self, storage: CartStorage) -> None:
        self._storage = storage
        self._token: str | None = None
        self._items: list[CartItem] = []
        self._updated_at: datetime | None = None
        self.load()

    @property
    def token(self) -> str:
        """Anonymous session token that owns this cart."""
        if self._token is None:
            self._token = uuid.uuid4().hex
        return self._token

    @property
    def items(self) -> list[CartItem]:
        return cart_rules.copy_items(self._items)

    @property
    def total(self) -> float:
        return cart_rules.compute_total(self._items)

    @property
    def updated_at(self) -> datetime | None:
        return self._updated_at

    @property
    def is_empty(self) -> bool:
        return not self._items

    def state(self) -> CartRead:
        return CartRead(
            owner=self.token,
            owner_kind=CartOwnerKind.anonymous,
            items=self.items,
            total=self.total,
            updated_at=self._updated_at,
        )

    def load(self) -> list[CartItem]:
        """Re-read durable storage; anything unreadable loads as an empty cart."""
        try:
            raw = self._storage.read()
            document = LocalCartDocument.model_validate(json.loads(raw)) if raw else LocalCartDocument()
        except (OSError, ValueError, TypeError, ValidationError):
            logger.warning("Discarding unreadable local cart", exc_info=True)
            document = LocalCartDocument()

        self._token = document.token or self._token
        # mismo id repetido en datos viejos: se suman
        self._items = cart_rules.merge_items([], document.items)
        self._updated_at = document.updated_at
        return self.items

    def persist(self, items: list[CartItem]) -> CartRead:
        """Replace the cart with ``items`` and write it to storage."""
        self._items = cart_rules.copy_items(items)
        self._updated_at = utcnow()
        document = LocalCartDocument(token=self.token, items=self._items, updated_at=self._updated_at)
        try:
            self._storage.write(document.model_dump_json())
        except OSError:
            # el estado en memoria sigue siendo válido
            logger.warning("Could not persist local cart", exc_info=True)
        return self.state()

    def add(self, item: CartItem) -> CartRead:
        return self.persist(cart_rules.add_item(self._items, item))

    def remove(self, item_id: str) -> CartRead:
        return self.persist(cart_rules.remove_item(self._items, item_id))

    def set_quantity(self, item_id: str, quantity: int) -> CartRead:
        try:
            items = cart_rules.set_quantity(self._items, item_id, quantity)
        except KeyError:
            return self.state()
        return self.persist(items)

    def clear(self) -> CartRead:
        return self.persist([])

    def discard(self, items: list[CartItem]) -> CartRead:
        """Remove the quantities of ``items``, keeping anything added since they were read."""
        return self.persist(cart_rules.subtract_items(self._items, items))
