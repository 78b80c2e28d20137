"""Persistent per-group member order with integrity repair and snapshots.

Positions mirror the row order of a group's physical tithe book. Every
multi-step mutation runs in one transaction and finishes with an integrity
pass, so duplicate or missing positions introduced by callers (or by a
reactivated member reclaiming an old slot) are repaired before commit.
Snapshots are committed before the mutation they guard.
"""

from __future__ import annotations

import hashlib
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ledgermatch.config import get_settings
from ledgermatch.db.transaction import atomic
from ledgermatch.matching.types import IdentityRecord, parse_member_id
from ledgermatch.models.base import utcnow
from ledgermatch.models.learned_alias import LearnedAlias
from ledgermatch.models.order_entry import OrderEntry
from ledgermatch.models.order_group import OrderGroup
from ledgermatch.models.order_history_entry import OrderHistoryEntry
from ledgermatch.models.order_snapshot import OrderSnapshot
from ledgermatch.schemas.history import HistoryAction
from ledgermatch.schemas.order import (
    BatchUpdateResult,
    DuplicatePosition,
    InitializeResult,
    IntegrityReport,
    PositionUpdate,
    PositionUpdateResult,
    ResetResult,
    RestoreResult,
    SyncResult,
)
from ledgermatch.services.history import append_history_entry, new_history_entry_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def get_ordered_members(db: Session, group_key: str) -> list[OrderEntry]:
    """Active members in ledger order; orphaned entries sort last."""

    stmt = (
        select(OrderEntry)
        .where(OrderEntry.group_key == group_key, OrderEntry.is_active.is_(True))
        .order_by(OrderEntry.position.is_(None), OrderEntry.position.asc(), OrderEntry.id.asc())
    )
    return list(db.scalars(stmt).all())


def list_members_first_seen_in(db: Session, group_key: str, month: str | None = None) -> list[OrderEntry]:
    """Active members first seen in `month` (``YYYY-MM``, default: current month)."""

    target_month = month or utcnow().strftime("%Y-%m")
    stmt = (
        select(OrderEntry)
        .where(
            OrderEntry.group_key == group_key,
            OrderEntry.is_active.is_(True),
            OrderEntry.first_seen_month == target_month,
        )
        .order_by(OrderEntry.position.asc(), OrderEntry.id.asc())
    )
    return list(db.scalars(stmt).all())


def get_member_entry(db: Session, group_key: str, member_id: str) -> OrderEntry | None:
    return db.scalar(
        select(OrderEntry).where(
            OrderEntry.group_key == group_key,
            OrderEntry.member_key == member_key_for(member_id),
        )
    )


def get_group_metadata(db: Session, group_key: str) -> OrderGroup | None:
    return db.scalar(select(OrderGroup).where(OrderGroup.group_key == group_key))


def list_groups(db: Session) -> list[OrderGroup]:
    return list(db.scalars(select(OrderGroup).order_by(OrderGroup.group_key.asc())).all())


def has_persisted_order(db: Session, group_key: str) -> bool:
    group = get_group_metadata(db, group_key)
    return group is not None and group.total_members > 0


def member_positions(db: Session, group_key: str) -> dict[str, int]:
    """Member key → position for active, well-placed entries."""

    return {
        entry.member_key: entry.position
        for entry in get_ordered_members(db, group_key)
        if entry.position is not None and entry.position >= 0
    }


# ---------------------------------------------------------------------------
# Seeding and sync
# ---------------------------------------------------------------------------


def initialize_order(db: Session, group_key: str, records: Sequence[IdentityRecord]) -> InitializeResult:
    """Replace a group's order with `records`, positions 1..N in input order."""

    clean_group_key = _require_group_key(group_key)
    history_entry_id = new_history_entry_id()
    snapshot_id = None
    if load_entries(db, clean_group_key, active_only=True):
        snapshot_id = create_snapshot(db, clean_group_key, history_entry_id)

    unique_records, skipped_count = _unique_roster(records)
    with atomic(db, "initialize"):
        now = utcnow()
        db.execute(delete(OrderEntry).where(OrderEntry.group_key == clean_group_key))
        for position, record in enumerate(unique_records, start=1):
            db.add(_new_entry(clean_group_key, record, position, now))
        db.flush()
        _upsert_group(db, clean_group_key, records=unique_records, now=now)
        append_history_entry(
            db,
            clean_group_key,
            "import",
            f"Initialized order with {len(unique_records)} members",
            len(unique_records),
            entry_id=history_entry_id,
        )

    logger.info(
        "order_store.initialized group_key=%s members=%d skipped=%d",
        clean_group_key,
        len(unique_records),
        skipped_count,
    )
    return InitializeResult(
        group_key=clean_group_key,
        member_count=len(unique_records),
        skipped_count=skipped_count,
        snapshot_id=snapshot_id,
        history_entry_id=history_entry_id,
    )


def sync_with_roster(
    db: Session,
    group_key: str,
    records: Sequence[IdentityRecord],
    *,
    deactivate_missing: bool = False,
) -> SyncResult:
    """Reactivate known members and append new ones after the current last position."""

    clean_group_key = _require_group_key(group_key)
    result = SyncResult(group_key=clean_group_key, total_processed=len(records))
    unique_records, result.skipped_count = _unique_roster(records)

    with atomic(db, "sync"):
        now = utcnow()
        existing = {entry.member_key: entry for entry in load_entries(db, clean_group_key)}
        max_position = max(
            (entry.position for entry in existing.values() if entry.position is not None),
            default=0,
        )
        seen_keys: set[str] = set()
        for record in unique_records:
            key = record.member_key
            seen_keys.add(key)
            entry = existing.get(key)
            if entry is not None:
                entry.is_active = True
                entry.display_name = record.display_name or entry.display_name
                entry.last_updated_at = now
                result.existing_member_ids.append(entry.member_id)
                continue
            max_position += 1
            db.add(_new_entry(clean_group_key, record, max_position, now))
            result.new_member_ids.append(record.member_id)

        if deactivate_missing:
            for key, entry in existing.items():
                if key not in seen_keys and entry.is_active:
                    entry.is_active = False
                    entry.last_updated_at = now
                    result.deactivated_member_ids.append(entry.member_id)

        run_integrity_pass(db, clean_group_key, auto_repair=True)
        _upsert_group(db, clean_group_key, records=unique_records, now=now)
        if result.new_member_ids or result.deactivated_member_ids:
            append_history_entry(
                db,
                clean_group_key,
                "import",
                (
                    f"Synced roster: {len(result.new_member_ids)} new members appended, "
                    f"{len(result.deactivated_member_ids)} deactivated"
                ),
                len(result.new_member_ids) + len(result.deactivated_member_ids),
            )

    logger.info(
        "order_store.synced group_key=%s new=%d existing=%d deactivated=%d skipped=%d",
        clean_group_key,
        len(result.new_member_ids),
        len(result.existing_member_ids),
        len(result.deactivated_member_ids),
        result.skipped_count,
    )
    return result


def deactivate_members(db: Session, group_key: str, member_ids: Iterable[str]) -> int:
    """Soft-delete members; their entries and history stay for reactivation."""

    keys = {member_key_for(member_id) for member_id in member_ids if member_id and member_id.strip()}
    if not keys:
        return 0
    with atomic(db, "deactivate"):
        now = utcnow()
        changed = 0
        for entry in load_entries(db, group_key, active_only=True):
            if entry.member_key in keys:
                entry.is_active = False
                entry.last_updated_at = now
                changed += 1
        if changed:
            _refresh_member_total(db, group_key)
            append_history_entry(db, group_key, "manual", f"Deactivated {changed} members", changed)
    return changed


# ---------------------------------------------------------------------------
# Position writes
# ---------------------------------------------------------------------------


def update_member_position(
    db: Session,
    group_key: str,
    member_id: str,
    new_position: int,
) -> PositionUpdateResult | None:
    """Move one member; whoever already holds `new_position` takes the old slot."""

    if isinstance(new_position, bool) or not isinstance(new_position, int) or new_position < 1:
        raise ValueError(f"Position must be a positive integer, got {new_position!r}")

    entry = get_member_entry(db, group_key, member_id)
    if entry is None or not entry.is_active:
        return None

    with atomic(db, "update_position"):
        now = utcnow()
        old_position = entry.position
        collision = db.scalar(
            select(OrderEntry)
            .where(
                OrderEntry.group_key == group_key,
                OrderEntry.is_active.is_(True),
                OrderEntry.position == new_position,
                OrderEntry.id != entry.id,
            )
            .order_by(OrderEntry.id.asc())
            .limit(1)
        )
        if collision is not None and (old_position is None or old_position < 0):
            # An orphaned mover has no slot to hand over; the holder goes to the end.
            trailing = (
                db.scalar(
                    select(func.max(OrderEntry.position)).where(
                        OrderEntry.group_key == group_key,
                        OrderEntry.is_active.is_(True),
                    )
                )
                or 0
            ) + 1
            collision.position = trailing
            collision.last_updated_at = now
            description = (
                f"Moved {entry.display_name} to #{new_position}; {collision.display_name} moved to #{trailing}"
            )
        elif collision is not None:
            collision.position = old_position
            collision.last_updated_at = now
            description = (
                f"Swapped #{old_position} ({entry.display_name}) with #{new_position} ({collision.display_name})"
            )
        else:
            description = f"Moved {entry.display_name} to #{new_position} (was #{old_position})"
        entry.position = new_position
        entry.last_updated_at = now
        history_entry_id = append_history_entry(
            db,
            group_key,
            "manual",
            description,
            2 if collision is not None else 1,
        )

    logger.info(
        "order_store.position_updated group_key=%s member_id=%s old=%s new=%d swapped=%s",
        group_key,
        entry.member_id,
        old_position,
        new_position,
        collision.member_id if collision is not None else None,
    )
    return PositionUpdateResult(
        member_id=entry.member_id,
        old_position=old_position,
        new_position=new_position,
        swapped_with_member_id=collision.member_id if collision is not None else None,
        history_entry_id=history_entry_id,
    )


def batch_update_positions(
    db: Session,
    group_key: str,
    updates: Sequence[PositionUpdate],
    *,
    action: HistoryAction = "batch-reorder",
    description: str | None = None,
) -> BatchUpdateResult:
    """Write many positions at once, then repair any collisions they caused."""

    history_entry_id = new_history_entry_id()
    snapshot_id = create_snapshot(db, group_key, history_entry_id)

    with atomic(db, "batch_update"):
        now = utcnow()
        entries = {entry.member_key: entry for entry in load_entries(db, group_key, active_only=True)}
        updated_keys: set[str] = set()
        skipped: list[str] = []
        for update in updates:
            entry = entries.get(member_key_for(update.member_id))
            if entry is None:
                skipped.append(update.member_id)
                continue
            entry.position = update.position
            entry.last_updated_at = now
            updated_keys.add(entry.member_key)

        integrity = run_integrity_pass(db, group_key, auto_repair=True)
        append_history_entry(
            db,
            group_key,
            action,
            description or f"Reordered {len(updated_keys)} members",
            len(updated_keys),
            entry_id=history_entry_id,
        )

    if skipped:
        logger.warning(
            "order_store.batch_update_skipped group_key=%s unknown_members=%d",
            group_key,
            len(skipped),
        )
    logger.info(
        "order_store.batch_updated group_key=%s action=%s updated=%d repaired=%d",
        group_key,
        action,
        len(updated_keys),
        integrity.repaired_count,
    )
    return BatchUpdateResult(
        group_key=group_key,
        updated_count=len(updated_keys),
        skipped_member_ids=skipped,
        snapshot_id=snapshot_id,
        history_entry_id=history_entry_id,
        integrity=integrity,
    )


def reset_order_from_roster(db: Session, group_key: str, records: Sequence[IdentityRecord]) -> ResetResult:
    """Renumber the listed members 1..N in roster order, keeping first-seen dates."""

    clean_group_key = _require_group_key(group_key)
    history_entry_id = new_history_entry_id()
    snapshot_id = create_snapshot(db, clean_group_key, history_entry_id)
    unique_records, skipped_count = _unique_roster(records)

    with atomic(db, "reset"):
        now = utcnow()
        existing = {entry.member_key: entry for entry in load_entries(db, clean_group_key)}
        for position, record in enumerate(unique_records, start=1):
            entry = existing.get(record.member_key)
            if entry is None:
                db.add(_new_entry(clean_group_key, record, position, now))
                continue
            entry.position = position
            entry.display_name = record.display_name or entry.display_name
            entry.is_active = True
            entry.last_updated_at = now
        integrity = run_integrity_pass(db, clean_group_key, auto_repair=True)
        _upsert_group(db, clean_group_key, records=unique_records, now=now)
        append_history_entry(
            db,
            clean_group_key,
            "reset",
            "Reset order to match master list",
            len(unique_records),
            entry_id=history_entry_id,
        )

    logger.info(
        "order_store.reset group_key=%s members=%d skipped=%d",
        clean_group_key,
        len(unique_records),
        skipped_count,
    )
    return ResetResult(
        group_key=clean_group_key,
        reset_count=len(unique_records),
        skipped_count=skipped_count,
        snapshot_id=snapshot_id,
        history_entry_id=history_entry_id,
        integrity=integrity,
    )


# ---------------------------------------------------------------------------
# Integrity
# ---------------------------------------------------------------------------


def validate_and_repair_order(db: Session, group_key: str, auto_repair: bool = True) -> IntegrityReport:
    """Scan a group's active entries for duplicate and orphaned positions."""

    with atomic(db, "validate_and_repair"):
        report = run_integrity_pass(db, group_key, auto_repair=auto_repair)
    if not report.is_healthy:
        logger.warning(
            "order_store.integrity_issues group_key=%s duplicates=%d orphans=%d repaired=%d",
            group_key,
            len(report.duplicate_positions),
            len(report.orphaned_member_ids),
            report.repaired_count,
        )
    return report


def run_integrity_pass(db: Session, group_key: str, *, auto_repair: bool) -> IntegrityReport:
    """Detect and optionally repair positional issues inside the caller's transaction.

    Duplicates keep the most recently updated entry in place (ties: newest
    row) and move the others to trailing positions in recency order. Orphans
    (null or negative positions) are appended after them.
    """

    db.flush()
    now = utcnow()
    entries = load_entries(db, group_key, active_only=True)
    by_position: dict[int, list[OrderEntry]] = defaultdict(list)
    orphans: list[OrderEntry] = []
    for entry in entries:
        if entry.position is None or entry.position < 0:
            orphans.append(entry)
            continue
        by_position[entry.position].append(entry)

    duplicates = {position: members for position, members in by_position.items() if len(members) > 1}
    report = IntegrityReport(
        is_healthy=not duplicates and not orphans,
        group_key=group_key,
        duplicate_positions=[
            DuplicatePosition(position=position, member_ids=[member.member_id for member in members])
            for position, members in sorted(duplicates.items())
        ],
        orphaned_member_ids=[entry.member_id for entry in orphans],
        total_members=len(entries),
        checked_at=now,
    )
    if report.is_healthy or not auto_repair:
        return report

    max_position = max(by_position, default=0)
    for position in sorted(duplicates):
        members = sorted(duplicates[position], key=_recency_key, reverse=True)
        for entry in members[1:]:
            max_position += 1
            entry.position = max_position
            entry.last_updated_at = now
            report.repaired_count += 1
    for entry in sorted(orphans, key=lambda item: item.id):
        max_position += 1
        entry.position = max_position
        entry.last_updated_at = now
        report.repaired_count += 1
    db.flush()

    append_history_entry(
        db,
        group_key,
        "manual",
        (
            f"Integrity check: repaired {report.repaired_count} issues "
            f"({len(duplicates)} duplicates, {len(orphans)} orphans)"
        ),
        report.repaired_count,
    )
    return report


def _recency_key(entry: OrderEntry) -> tuple[datetime, int]:
    return (_as_utc(entry.last_updated_at), entry.id)


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


def create_snapshot(db: Session, group_key: str, history_entry_id: str) -> str:
    """Persist the group's current active order and prune old snapshots."""

    entries = get_ordered_members(db, group_key)
    snapshot = OrderSnapshot(
        snapshot_id=f"snapshot-{uuid4().hex}",
        group_key=group_key,
        history_entry_id=history_entry_id,
        member_count=len(entries),
        entries_json=[
            {
                "member_id": entry.member_id,
                "display_name": entry.display_name,
                "position": entry.position,
            }
            for entry in entries
        ],
        created_at=utcnow(),
    )
    with atomic(db, "snapshot"):
        db.add(snapshot)
        db.flush()
        pruned = _prune_snapshots(db, group_key, get_settings().snapshot_retention)

    logger.info(
        "order_store.snapshot_created group_key=%s snapshot_id=%s members=%d pruned=%d",
        group_key,
        snapshot.snapshot_id,
        len(entries),
        pruned,
    )
    return snapshot.snapshot_id


def _prune_snapshots(db: Session, group_key: str, keep: int) -> int:
    stmt = (
        select(OrderSnapshot)
        .where(OrderSnapshot.group_key == group_key)
        .order_by(OrderSnapshot.created_at.desc(), OrderSnapshot.id.desc())
    )
    stale = list(db.scalars(stmt).all())[max(keep, 0):]
    for snapshot in stale:
        db.delete(snapshot)
    return len(stale)


def list_snapshots(db: Session, group_key: str, limit: int = 10) -> list[OrderSnapshot]:
    stmt = (
        select(OrderSnapshot)
        .where(OrderSnapshot.group_key == group_key)
        .order_by(OrderSnapshot.created_at.desc(), OrderSnapshot.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


def get_snapshot(db: Session, snapshot_id: str) -> OrderSnapshot | None:
    return db.scalar(select(OrderSnapshot).where(OrderSnapshot.snapshot_id == snapshot_id))


def get_snapshot_for_history(db: Session, history_entry_id: str) -> OrderSnapshot | None:
    return db.scalar(select(OrderSnapshot).where(OrderSnapshot.history_entry_id == history_entry_id))


def restore_snapshot(db: Session, snapshot_id: str) -> RestoreResult | None:
    """Put snapshot positions back for members that still exist."""

    snapshot = get_snapshot(db, snapshot_id)
    if snapshot is None:
        return None
    group_key = snapshot.group_key
    snapshot_created_at = snapshot.created_at
    saved_positions = [
        (str(item["member_id"]), item.get("position")) for item in snapshot.entries_json
    ]

    history_entry_id = new_history_entry_id()
    undo_snapshot_id = create_snapshot(db, group_key, history_entry_id)

    with atomic(db, "restore"):
        now = utcnow()
        entries = {entry.member_key: entry for entry in load_entries(db, group_key)}
        restored = 0
        for member_id, position in saved_positions:
            entry = entries.get(member_key_for(member_id))
            if entry is None:
                continue
            entry.position = position
            entry.last_updated_at = now
            restored += 1
        run_integrity_pass(db, group_key, auto_repair=True)
        append_history_entry(
            db,
            group_key,
            "reset",
            f"Restored order from snapshot ({_as_utc(snapshot_created_at):%Y-%m-%d %H:%M})",
            restored,
            entry_id=history_entry_id,
        )

    logger.info(
        "order_store.snapshot_restored group_key=%s snapshot_id=%s restored=%d",
        group_key,
        snapshot_id,
        restored,
    )
    return RestoreResult(
        snapshot_id=snapshot_id,
        group_key=group_key,
        restored_count=restored,
        undo_snapshot_id=undo_snapshot_id,
        history_entry_id=history_entry_id,
    )


# ---------------------------------------------------------------------------
# Group deletion
# ---------------------------------------------------------------------------


def delete_group_data(db: Session, group_key: str) -> bool:
    """Remove every record kept for a group (order, metadata, history, snapshots, aliases)."""

    has_data = db.scalar(
        select(func.count(OrderEntry.id)).where(OrderEntry.group_key == group_key)
    ) or get_group_metadata(db, group_key) is not None
    if not has_data:
        return False
    with atomic(db, "delete_group"):
        db.execute(delete(OrderEntry).where(OrderEntry.group_key == group_key))
        db.execute(delete(OrderSnapshot).where(OrderSnapshot.group_key == group_key))
        db.execute(delete(OrderHistoryEntry).where(OrderHistoryEntry.group_key == group_key))
        db.execute(delete(LearnedAlias).where(LearnedAlias.group_key == group_key))
        db.execute(delete(OrderGroup).where(OrderGroup.group_key == group_key))
    logger.info("order_store.group_deleted group_key=%s", group_key)
    return True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def member_key_for(member_id: str) -> str:
    return parse_member_id(member_id).lower()


def _require_group_key(group_key: str) -> str:
    clean = group_key.strip()
    if not clean:
        raise ValueError("group_key must not be empty")
    return clean


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def load_entries(db: Session, group_key: str, *, active_only: bool = False) -> list[OrderEntry]:
    stmt = select(OrderEntry).where(OrderEntry.group_key == group_key)
    if active_only:
        stmt = stmt.where(OrderEntry.is_active.is_(True))
    return list(db.scalars(stmt.order_by(OrderEntry.id.asc())).all())


def _unique_roster(records: Sequence[IdentityRecord]) -> tuple[list[IdentityRecord], int]:
    """Drop records without an identifier and repeated identifiers, keeping first occurrences."""

    seen: set[str] = set()
    unique: list[IdentityRecord] = []
    skipped = 0
    for record in records:
        key = record.member_key
        if key is None or key in seen:
            skipped += 1
            continue
        seen.add(key)
        unique.append(record)
    if skipped:
        logger.warning("order_store.roster_records_skipped count=%d", skipped)
    return unique, skipped


def _new_entry(group_key: str, record: IdentityRecord, position: int, now: datetime) -> OrderEntry:
    return OrderEntry(
        group_key=group_key,
        member_id=record.member_id,
        member_key=record.member_key,
        display_name=record.display_name,
        position=position,
        first_seen_at=now,
        first_seen_month=now.strftime("%Y-%m"),
        last_updated_at=now,
        is_active=True,
    )


def _roster_hash(records: Sequence[IdentityRecord]) -> str:
    ids = ",".join(sorted(record.member_key or "" for record in records))
    return hashlib.sha1(ids.encode("utf-8")).hexdigest()


def _refresh_member_total(db: Session, group_key: str) -> None:
    group = get_group_metadata(db, group_key)
    if group is not None:
        db.flush()
        group.total_members = len(load_entries(db, group_key, active_only=True))


def _upsert_group(db: Session, group_key: str, *, records: Sequence[IdentityRecord], now: datetime) -> None:
    db.flush()
    group = get_group_metadata(db, group_key)
    if group is None:
        group = OrderGroup(group_key=group_key)
        db.add(group)
    group.total_members = len(load_entries(db, group_key, active_only=True))
    group.last_synced_at = now
    group.roster_hash = _roster_hash(records)
