from . import cart
from . import orders

__all__ = [
    "cart",
    "orders",
]
