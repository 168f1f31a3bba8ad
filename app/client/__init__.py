"""Client-side cart handling: the anonymous cart, the API client and the merge at login."""

from .api_client import StorefrontApiError, StorefrontClient
from .local_cart import JsonFileStorage, LocalCartStore, MemoryStorage
from .merge import CartMergeProtocol, MergeResult, ServerCartGateway
from .session import CartSession

__all__ = [
    "CartMergeProtocol",
    "CartSession",
    "JsonFileStorage",
    "LocalCartStore",
    "MemoryStorage",
    "MergeResult",
    "ServerCartGateway",
    "StorefrontApiError",
    "StorefrontClient",
]
