# app/models/cart.py
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartDocument(Base):
    """One cart document per authenticated owner; ``items`` is the whole cart body."""

    __tablename__ = "cart_documents"

    owner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    created_at = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
