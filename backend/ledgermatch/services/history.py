"""Append-only order history log."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgermatch.config import get_settings
from ledgermatch.models.base import utcnow
from ledgermatch.models.order_history_entry import OrderHistoryEntry
from ledgermatch.schemas.history import HistoryAction

HISTORY_ACTIONS: frozenset[str] = frozenset({"manual", "batch-reorder", "ai-reorder", "import", "reset"})


def new_history_entry_id() -> str:
    """Pre-allocate an id so snapshots can reference the entry before it is written."""

    return uuid4().hex


def append_history_entry(
    db: Session,
    group_key: str,
    action: HistoryAction,
    description: str,
    affected_count: int,
    *,
    entry_id: str | None = None,
) -> str:
    """Add one history entry to the current transaction and return its id.

    The caller commits, so the entry lands together with the mutation it
    describes.
    """

    if action not in HISTORY_ACTIONS:
        raise ValueError(f"Unknown history action: {action}")
    if affected_count < 0:
        raise ValueError("affected_count must be non-negative")
    entry = OrderHistoryEntry(
        entry_id=entry_id or new_history_entry_id(),
        group_key=group_key,
        action=action,
        timestamp=utcnow(),
        description=description[:512],
        affected_count=affected_count,
    )
    db.add(entry)
    db.flush()
    return entry.entry_id


def list_history(db: Session, group_key: str, limit: int | None = None) -> list[OrderHistoryEntry]:
    """Return a group's history, newest first."""

    if limit is None:
        limit = get_settings().history_default_limit
    if limit < 0:
        raise ValueError("limit must be non-negative")
    stmt = (
        select(OrderHistoryEntry)
        .where(OrderHistoryEntry.group_key == group_key)
        .order_by(OrderHistoryEntry.timestamp.desc(), OrderHistoryEntry.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def get_history_entry(db: Session, entry_id: str) -> OrderHistoryEntry | None:
    return db.scalar(select(OrderHistoryEntry).where(OrderHistoryEntry.entry_id == entry_id))
