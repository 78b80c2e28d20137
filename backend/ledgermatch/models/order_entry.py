"""Persisted member order entry model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledgermatch.models.base import Base, IdMixin, utcnow


class OrderEntry(Base, IdMixin):
    """One member's position in a group's physical ledger order."""

    __tablename__ = "order_entries"
    __table_args__ = (
        UniqueConstraint("group_key", "member_key", name="uq_order_entries_group_member"),
        Index("ix_order_entries_group_active_position", "group_key", "is_active", "position"),
    )

    group_key: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    member_id: Mapped[str] = mapped_column(String(255), nullable=False)
    member_key: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    first_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    first_seen_month: Mapped[str] = mapped_column(String(7), index=True, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
