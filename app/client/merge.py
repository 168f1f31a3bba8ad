"""One-shot reconciliation of the anonymous cart into the server cart at login.

Steps, in order:

1. snapshot the local items;
2. read the server cart;
3. fold local into server (quantities of matching ids are summed);
4. write the merged cart back in a single ``replace`` call;
5. drop the snapshotted lines from the local cart, only once step 4 was
   acknowledged. Lines added locally while 2-4 were awaited stay for the next login.

A failure in 2 or 4 propagates and leaves the local cart untouched, so the
merge can be retried. Re-running 1-4 after a successful write would count the
local items twice, so a run is guarded by a lock while in progress and by a
per-owner "merged" marker afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional, Protocol

from app.client.local_cart import LocalCartStore
from app.core.logging import get_logger
from app.domain.cart import merge_items
from app.schemas.cart import CartItem, CartRead

logger = get_logger(__name__)


class ServerCartGateway(Protocol):
    async def get(self, owner_id: str) -> CartRead: ...

    async def replace(self, owner_id: str, items: Sequence[CartItem]) -> CartRead: ...


@dataclass(frozen=True)
class MergeResult:
    merged: bool
    skipped: Optional[str] = None
    cart: Optional[CartRead] = None


class CartMergeProtocol:
    def __init__(self, local: LocalCartStore, gateway: ServerCartGateway) -> None:
        self._local = local
        self._gateway = gateway
        self._lock = asyncio.Lock()
        self._merged_owners: set[str] = set()

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def has_merged(self, owner_id: str) -> bool:
        return owner_id in self._merged_owners

    def reset(self, owner_id: str | None = None) -> None:
        """Forget the merged marker (on logout) so the next login merges again."""
        if owner_id is None:
            self._merged_owners.clear()
        else:
            self._merged_owners.discard(owner_id)

    async def run(self, owner_id: str) -> MergeResult:
        if not owner_id:
            raise ValueError("An authenticated owner is required to merge the cart")
        if self._lock.locked():
            return MergeResult(merged=False, skipped="in_progress")
        if owner_id in self._merged_owners:
            return MergeResult(merged=False, skipped="already_merged")

        async with self._lock:
            local_items = self._local.items
            if not local_items:
                return MergeResult(merged=False, skipped="empty_local")

            server = await self._gateway.get(owner_id)
            merged = merge_items(server.items, local_items)
            cart = await self._gateway.replace(owner_id, merged)

            self._local.discard(local_items)
            self._merged_owners.add(owner_id)
            logger.info(
                "Anonymous cart merged",
                extra={"owner_id": owner_id, "local_lines": len(local_items), "lines": len(cart.items)},
            )
            return MergeResult(merged=True, cart=cart)
