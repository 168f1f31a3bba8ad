# app/models/order.py
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.session import Base
from app.domain.enums import OrderStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("order_number", name="uq_orders_order_number"),
        UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
        Index("ix_orders_user_id_created", "user_id", "created_at"),
    )

    # order-00001; la PK impide sobrescribir una orden existente
    order_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # Snapshot inmutable del carrito al momento del checkout
    items: Mapped[list] = mapped_column(JSON, nullable=False)

    subtotal: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    tax_percentage: Mapped[float] = mapped_column(Numeric(6, 4), nullable=False, default=0)
    tax_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    delivery_fee: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)

    shipping_address: Mapped[dict] = mapped_column(JSON, nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(40), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_info: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), default=OrderStatus.pending, nullable=False)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True)

    created_at = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    status_changes: Mapped[list["OrderStatusChange"]] = relationship(
        "OrderStatusChange",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusChange.id",
    )


class OrderStatusChange(Base):
    __tablename__ = "order_status_changes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), nullable=False)
    to_status: Mapped[OrderStatus] = mapped_column(Enum(OrderStatus), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    changed_at = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    order = relationship("Order", back_populates="status_changes")


class OrderCounter(Base):
    """Last issued order number per sequence; incremented atomically at checkout."""

    __tablename__ = "order_counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
