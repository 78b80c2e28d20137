"""Learned alias store for previously resolved handwriting variants."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledgermatch.matching.resolver import normalize_candidate_text
from ledgermatch.matching.types import parse_member_id
from ledgermatch.models.base import utcnow
from ledgermatch.models.learned_alias import LearnedAlias

logger = logging.getLogger(__name__)


def save_alias(
    db: Session,
    group_key: str,
    raw_text: str,
    member_id: str,
    display_name: str,
) -> LearnedAlias | None:
    """Upsert an alias, bumping its usage count when it already exists."""

    normalized = normalize_candidate_text(raw_text or "")
    if not normalized:
        logger.warning("aliases.save_skipped group_key=%s reason=empty_text", group_key)
        return None
    clean_member_id = parse_member_id(member_id)
    if not clean_member_id:
        logger.warning("aliases.save_skipped group_key=%s reason=empty_member_id", group_key)
        return None

    now = utcnow()
    alias = _get_by_text(db, group_key, normalized)
    if alias is None:
        alias = LearnedAlias(
            group_key=group_key,
            normalized_text=normalized,
            member_id=clean_member_id,
            display_name=display_name.strip() or clean_member_id,
            usage_count=1,
            created_at=now,
            last_used_at=now,
        )
        db.add(alias)
    else:
        alias.member_id = clean_member_id
        alias.display_name = display_name.strip() or clean_member_id
        alias.usage_count += 1
        alias.last_used_at = now
    db.commit()
    db.refresh(alias)
    logger.info(
        "aliases.saved group_key=%s text=%r member_id=%s usage_count=%d",
        group_key,
        normalized,
        alias.member_id,
        alias.usage_count,
    )
    return alias


def lookup_alias(db: Session, group_key: str, raw_text: str) -> LearnedAlias | None:
    normalized = normalize_candidate_text(raw_text or "")
    if not normalized:
        return None
    return _get_by_text(db, group_key, normalized)


def list_aliases(db: Session, group_key: str) -> list[LearnedAlias]:
    stmt = (
        select(LearnedAlias)
        .where(LearnedAlias.group_key == group_key)
        .order_by(LearnedAlias.normalized_text.asc(), LearnedAlias.id.asc())
    )
    return list(db.scalars(stmt).all())


def alias_map(db: Session, group_key: str) -> dict[str, str]:
    """Normalized text → member id, as consumed by the resolver."""

    return {alias.normalized_text: alias.member_id for alias in list_aliases(db, group_key)}


def record_alias_use(db: Session, group_key: str, raw_text: str) -> LearnedAlias | None:
    """Count an automatic reuse of an alias. Does not commit."""

    alias = lookup_alias(db, group_key, raw_text)
    if alias is None:
        return None
    alias.usage_count += 1
    alias.last_used_at = utcnow()
    return alias


def delete_alias(db: Session, group_key: str, alias_id: int) -> bool:
    """Remove an alias on explicit user request."""

    alias = db.scalar(
        select(LearnedAlias).where(LearnedAlias.id == alias_id, LearnedAlias.group_key == group_key)
    )
    if alias is None:
        return False
    db.delete(alias)
    db.commit()
    return True


def _get_by_text(db: Session, group_key: str, normalized: str) -> LearnedAlias | None:
    return db.scalar(
        select(LearnedAlias).where(
            LearnedAlias.group_key == group_key,
            LearnedAlias.normalized_text == normalized,
        )
    )
