"""Per-group order metadata model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgermatch.models.base import Base, IdMixin, utcnow


class OrderGroup(Base, IdMixin):
    """Sync bookkeeping for one group (assembly)."""

    __tablename__ = "order_groups"

    group_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    total_members: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    roster_hash: Mapped[str] = mapped_column(String(64), default="", nullable=False)
