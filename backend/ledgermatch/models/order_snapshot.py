"""Immutable order snapshot model."""

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgermatch.models.base import Base, CreatedAtMixin, IdMixin


class OrderSnapshot(Base, IdMixin, CreatedAtMixin):
    """Point-in-time copy of a group's active order, used for undo."""

    __tablename__ = "order_snapshots"

    snapshot_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    group_key: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    history_entry_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    member_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    entries_json: Mapped[list[dict[str, object]]] = mapped_column(JSON, default=list, nullable=False)
