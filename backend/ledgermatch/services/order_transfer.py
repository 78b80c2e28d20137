"""Export a group's order to a versioned document and import it back."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ledgermatch.db.transaction import atomic
from ledgermatch.models.base import utcnow
from ledgermatch.schemas.transfer import ORDER_EXPORT_VERSION, ImportResult, OrderExport, OrderExportMember
from ledgermatch.services.history import append_history_entry, new_history_entry_id
from ledgermatch.services.order_store import (
    create_snapshot,
    get_ordered_members,
    load_entries,
    member_key_for,
    run_integrity_pass,
)

logger = logging.getLogger(__name__)


def export_order(db: Session, group_key: str) -> OrderExport:
    members = [
        OrderExportMember(
            member_id=entry.member_id,
            display_name=entry.display_name,
            position=entry.position,
        )
        for entry in get_ordered_members(db, group_key)
        if entry.position is not None
    ]
    return OrderExport(
        version=ORDER_EXPORT_VERSION,
        group_key=group_key,
        exported_at=utcnow(),
        member_count=len(members),
        members=members,
    )


def import_order(db: Session, group_key: str, data: OrderExport) -> ImportResult:
    """Overwrite positions of known members from an exported document.

    Version or group mismatches are reported without touching the store.
    """

    result = ImportResult()
    if data.version != ORDER_EXPORT_VERSION:
        result.errors.append(f"Unsupported version: {data.version}")
    if data.group_key != group_key:
        result.errors.append(f"Group mismatch: expected {group_key}, got {data.group_key}")
    if result.errors:
        logger.warning("order_transfer.import_rejected group_key=%s errors=%d", group_key, len(result.errors))
        return result

    history_entry_id = new_history_entry_id()
    create_snapshot(db, group_key, history_entry_id)

    with atomic(db, "import"):
        now = utcnow()
        entries = {entry.member_key: entry for entry in load_entries(db, group_key)}
        for member in data.members:
            entry = entries.get(member_key_for(member.member_id))
            if entry is None:
                result.skipped_count += 1
                continue
            entry.position = member.position
            entry.last_updated_at = now
            result.imported_count += 1
        run_integrity_pass(db, group_key, auto_repair=True)
        append_history_entry(
            db,
            group_key,
            "import",
            f"Imported order from backup ({result.imported_count} members)",
            result.imported_count,
            entry_id=history_entry_id,
        )

    if result.skipped_count:
        logger.warning(
            "order_transfer.import_skipped group_key=%s unknown_members=%d",
            group_key,
            result.skipped_count,
        )
    logger.info("order_transfer.imported group_key=%s imported=%d", group_key, result.imported_count)
    result.success = True
    return result
