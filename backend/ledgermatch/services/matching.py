"""Matching workflow: resolve ledger names against a roster with stored context."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from ledgermatch.db.transaction import atomic
from ledgermatch.matching.resolver import IdentityResolver
from ledgermatch.matching.types import CandidateName, IdentityRecord, ResolutionReport
from ledgermatch.models.learned_alias import LearnedAlias
from ledgermatch.schemas.order import PositionUpdate
from ledgermatch.services.aliases import alias_map, record_alias_use, save_alias
from ledgermatch.services.order_store import member_positions

logger = logging.getLogger(__name__)


def match_candidates(
    db: Session,
    group_key: str,
    candidates: Sequence[CandidateName],
    roster: Sequence[IdentityRecord],
    *,
    threshold: float | None = None,
) -> ResolutionReport:
    """Run the resolver with the group's learned aliases and persisted positions."""

    resolver = IdentityResolver(threshold=threshold)
    report = resolver.resolve(
        candidates,
        roster,
        positions=member_positions(db, group_key),
        aliases=alias_map(db, group_key),
    )

    if report.alias_hits:
        with atomic(db, "record_alias_use"):
            for match in report.alias_hits:
                record_alias_use(db, group_key, match.candidate.text)

    logger.info(
        "matching.completed group_key=%s candidates=%d matched=%d alias_hits=%d unmatched=%d",
        group_key,
        len(candidates),
        len(report.matches),
        len(report.alias_hits),
        len(report.unmatched),
    )
    return report


def confirm_match(db: Session, group_key: str, raw_text: str, record: IdentityRecord) -> LearnedAlias | None:
    """Remember a human resolution so the same spelling matches instantly next time."""

    member_id = record.member_id
    if member_id is None:
        logger.warning("matching.confirm_skipped group_key=%s reason=no_identifier", group_key)
        return None
    return save_alias(db, group_key, raw_text, member_id, record.display_name)


def proposed_positions(report: ResolutionReport) -> list[PositionUpdate]:
    """Ledger row hints of matched candidates, as position updates."""

    updates: list[PositionUpdate] = []
    for match in report.matches:
        member_id = match.record.member_id
        hint = match.candidate.position_hint
        if member_id is None or hint is None or hint < 1:
            continue
        updates.append(PositionUpdate(member_id=member_id, position=hint))
    return updates
