"""Preview and selectively apply a proposed member order."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from ledgermatch.schemas.history import HistoryAction
from ledgermatch.schemas.order import BatchUpdateResult, OrderChange, PositionUpdate
from ledgermatch.services.order_store import batch_update_positions, get_ordered_members, member_key_for

logger = logging.getLogger(__name__)


def preview_reorder(db: Session, group_key: str, proposed: Sequence[PositionUpdate]) -> list[OrderChange]:
    """Compare proposed positions with the persisted order without writing anything."""

    entries = {entry.member_key: entry for entry in get_ordered_members(db, group_key)}
    changes: list[OrderChange] = []
    for update in proposed:
        entry = entries.get(member_key_for(update.member_id))
        if entry is None:
            changes.append(
                OrderChange(
                    member_id=update.member_id,
                    display_name=None,
                    current_position=None,
                    proposed_position=update.position,
                    status="unknown",
                )
            )
            continue
        changes.append(
            OrderChange(
                member_id=entry.member_id,
                display_name=entry.display_name,
                current_position=entry.position,
                proposed_position=update.position,
                status="unchanged" if entry.position == update.position else "moved",
            )
        )
    return changes


def apply_reorder(
    db: Session,
    group_key: str,
    proposed: Sequence[PositionUpdate],
    *,
    selected_member_ids: Iterable[str] | None = None,
    action: HistoryAction = "ai-reorder",
) -> BatchUpdateResult | None:
    """Write the moved (and, when given, selected) changes as one batch.

    Returns None when nothing would move.
    """

    selected = (
        None
        if selected_member_ids is None
        else {member_key_for(member_id) for member_id in selected_member_ids}
    )
    updates = [
        PositionUpdate(member_id=change.member_id, position=change.proposed_position)
        for change in preview_reorder(db, group_key, proposed)
        if change.status == "moved" and (selected is None or member_key_for(change.member_id) in selected)
    ]
    if not updates:
        logger.info("reorder.nothing_to_apply group_key=%s proposed=%d", group_key, len(proposed))
        return None
    description = (
        f"Applied ledger order for {len(updates)} members"
        if action == "ai-reorder"
        else f"Reordered {len(updates)} members"
    )
    return batch_update_positions(db, group_key, updates, action=action, description=description)
