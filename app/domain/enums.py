# app/domain/enums.py
import enum


class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    preparing = "preparing"
    ready = "ready"
    delivered = "delivered"
    cancelled = "cancelled"


class CartOwnerKind(str, enum.Enum):
    user = "user"
    anonymous = "anonymous"
