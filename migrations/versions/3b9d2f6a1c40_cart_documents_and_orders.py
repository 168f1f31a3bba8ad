"""cart documents, orders and order counter

Revision ID: 3b9d2f6a1c40
Revises:
Create Date: 2026-10-12 10:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3b9d2f6a1c40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ORDER_STATUSES = ("pending", "confirmed", "preparing", "ready", "delivered", "cancelled")


def upgrade() -> None:
    orderstatus = sa.Enum(*ORDER_STATUSES, name="orderstatus")

    op.create_table(
        "cart_documents",
        sa.Column("owner_id", sa.String(length=128), primary_key=True, nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "orders",
        sa.Column("order_id", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("tax_percentage", sa.Numeric(6, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("delivery_fee", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("shipping_address", sa.JSON(), nullable=False),
        sa.Column("contact_phone", sa.String(length=40), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("customer_info", sa.JSON(), nullable=True),
        sa.Column("status", orderstatus, nullable=False, server_default="pending"),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_by", sa.String(length=128), nullable=True),
        sa.UniqueConstraint("order_number", name="uq_orders_order_number"),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_orders_user_idempotency_key"),
    )
    op.create_index("ix_orders_user_id_created", "orders", ["user_id", "created_at"], unique=False)

    op.create_table(
        "order_status_changes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(length=32), nullable=False),
        sa.Column("from_status", orderstatus, nullable=False),
        sa.Column("to_status", orderstatus, nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.order_id"], ondelete="CASCADE"),
    )
    op.create_index("ix_order_status_changes_order_id", "order_status_changes", ["order_id"], unique=False)

    counters = op.create_table(
        "order_counters",
        sa.Column("name", sa.String(length=50), primary_key=True, nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.bulk_insert(counters, [{"name": "orders", "value": 0}])


def downgrade() -> None:
    op.drop_table("order_counters")
    op.drop_index("ix_order_status_changes_order_id", table_name="order_status_changes")
    op.drop_table("order_status_changes")
    op.drop_index("ix_orders_user_id_created", table_name="orders")
    op.drop_table("orders")
    op.drop_table("cart_documents")
    sa.Enum(name="orderstatus").drop(op.get_bind(), checkfirst=True)
