"""Diff a re-uploaded roster against the master roster by member identifiers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from ledgermatch.matching.types import (
    ATTRIBUTE_FIELDS,
    ChangedMember,
    ConflictingMember,
    FieldChange,
    IdentityRecord,
    MatchedMember,
    MatchType,
    ReconciliationReport,
    split_id_parts,
)

logger = logging.getLogger(__name__)

TRACKED_FIELDS: tuple[str, ...] = (
    "first_name",
    "surname",
    "other_names",
    "title",
    *ATTRIBUTE_FIELDS,
    "primary_id",
    "legacy_id",
)


def _name_key(record: IdentityRecord) -> str | None:
    surname = record.surname.strip()
    first_name = record.first_name.strip()
    if not surname or not first_name:
        return None
    return f"{surname}|{first_name}".lower()


def diff_records(master: IdentityRecord, new: IdentityRecord) -> list[FieldChange]:
    """Per-field deltas over the tracked field list."""

    changes: list[FieldChange] = []
    for field_name in TRACKED_FIELDS:
        old_value = master.field_value(field_name)
        new_value = new.field_value(field_name)
        if old_value != new_value:
            changes.append(FieldChange(field=field_name, old_value=old_value, new_value=new_value))
    return changes


def _match_type(new: IdentityRecord, master: IdentityRecord) -> MatchType:
    new_parts = set(split_id_parts(new.primary_id))
    master_parts = set(split_id_parts(master.primary_id))
    if new_parts and new_parts & master_parts:
        return "by_current_id"
    return "by_legacy_id"


def reconcile(
    new_roster: Sequence[IdentityRecord],
    master_roster: Sequence[IdentityRecord],
) -> ReconciliationReport:
    """Classify every new and master record into exactly one report bucket.

    A master record is claimed by at most one new record: the first one in
    upload order. Later rows that resolve to an already-claimed master are
    treated as unmatched so duplicate rows cannot overwrite each other.
    """

    report = ReconciliationReport()

    master_by_id: dict[str, int] = {}
    max_custom_order = 0
    for index, master in enumerate(master_roster):
        if master.custom_order is not None and master.custom_order > max_custom_order:
            max_custom_order = master.custom_order
        for part in (*split_id_parts(master.primary_id), *split_id_parts(master.legacy_id)):
            master_by_id.setdefault(part, index)
        if not master.has_identifier:
            report.unidentifiable_master.append(master)

    master_by_name: dict[str, int] = {}
    for index, master in enumerate(master_roster):
        name_key = _name_key(master)
        if name_key is not None:
            master_by_name[name_key] = index

    claimed: set[int] = set()
    conflict_targets: set[int] = set()
    next_order = max_custom_order + 1

    for new in new_roster:
        matched_index = _lookup(split_id_parts(new.primary_id), master_by_id)
        if matched_index is None:
            matched_index = _lookup(split_id_parts(new.legacy_id), master_by_id)
        if matched_index is not None and matched_index in claimed:
            logger.warning(
                "reconciliation.duplicate_claim member_id=%s",
                master_roster[matched_index].member_id,
            )
            matched_index = None

        if matched_index is not None:
            claimed.add(matched_index)
            master = master_roster[matched_index]
            member_id = master.current_id or master.old_id
            match_type = _match_type(new, master)
            changes = diff_records(master, new)
            if changes:
                report.changed.append(
                    ChangedMember(
                        member_id=member_id,
                        master_record=master,
                        new_record=new,
                        match_type=match_type,
                        changes=changes,
                    )
                )
            else:
                report.matched.append(
                    MatchedMember(
                        member_id=member_id,
                        master_record=master,
                        new_record=new,
                        match_type=match_type,
                    )
                )
            continue

        name_key = _name_key(new)
        if name_key is not None and name_key in master_by_name:
            existing_index = master_by_name[name_key]
            conflict_targets.add(existing_index)
            report.conflicts.append(
                ConflictingMember(new_record=new, existing_record=master_roster[existing_index])
            )
        elif not new.has_identifier:
            report.unidentifiable_new.append(new)
        else:
            report.new_members.append(replace(new, custom_order=next_order))
            next_order += 1

    for index, master in enumerate(master_roster):
        if index in claimed or index in conflict_targets or not master.has_identifier:
            continue
        report.missing_from_upload.append(master)

    logger.info(
        (
            "reconciliation.completed matched=%d changed=%d new=%d conflicts=%d "
            "unidentifiable_new=%d unidentifiable_master=%d missing=%d"
        ),
        len(report.matched),
        len(report.changed),
        len(report.new_members),
        len(report.conflicts),
        len(report.unidentifiable_new),
        len(report.unidentifiable_master),
        len(report.missing_from_upload),
    )
    return report


def _lookup(parts: list[str], index: dict[str, int]) -> int | None:
    for part in parts:
        if part in index:
            return index[part]
    return None
