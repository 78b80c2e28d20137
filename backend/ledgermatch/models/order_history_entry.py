"""Append-only order history model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgermatch.models.base import Base, IdMixin, utcnow


class OrderHistoryEntry(Base, IdMixin):
    """Audit record for one order-mutating operation."""

    __tablename__ = "order_history"

    entry_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    group_key: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    description: Mapped[str] = mapped_column(String(512), nullable=False)
    affected_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
