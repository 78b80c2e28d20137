"""Match observed names against a roster without double-claiming anyone."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from ledgermatch.config import get_settings
from ledgermatch.matching.assignment import solve_assignment
from ledgermatch.matching.similarity import best_name_similarity
from ledgermatch.matching.types import (
    CandidateMatch,
    CandidateName,
    IdentityRecord,
    ResolutionReport,
    ScoredRecord,
    UnmatchedCandidate,
)


_POSITION_BONUSES: tuple[tuple[int, float], ...] = ((0, 0.05), (2, 0.03), (5, 0.01))


def normalize_candidate_text(value: str) -> str:
    """Key used for alias lookups: lowercase, trimmed, single-spaced."""

    return " ".join(value.lower().split())


def position_bonus(position_hint: int | None, member_position: int | None) -> float:
    """Small tie-break bonus for records sitting near the ledger row."""

    if position_hint is None or member_position is None or member_position <= 0:
        return 0.0
    distance = abs(position_hint - member_position)
    for max_distance, bonus in _POSITION_BONUSES:
        if distance <= max_distance:
            return bonus
    return 0.0


class IdentityResolver:
    """Alias lookup first, then a globally optimal fuzzy assignment."""

    def __init__(
        self,
        *,
        threshold: float | None = None,
        suggestion_limit: int | None = None,
        suggestion_min_score: float | None = None,
    ) -> None:
        settings = get_settings()
        self.threshold = settings.match_threshold if threshold is None else threshold
        self.suggestion_limit = settings.suggestion_limit if suggestion_limit is None else suggestion_limit
        self.suggestion_min_score = (
            settings.suggestion_min_score if suggestion_min_score is None else suggestion_min_score
        )
        if self.suggestion_limit < 0:
            raise ValueError("suggestion_limit must be non-negative")

    def resolve(
        self,
        candidates: Sequence[CandidateName],
        roster: Sequence[IdentityRecord],
        *,
        positions: Mapping[str, int] | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> ResolutionReport:
        """Resolve candidates against the roster.

        `positions` maps member keys to persisted ledger positions and
        `aliases` maps normalized candidate text to member ids; both are
        optional and keyed case-insensitively.
        """

        positions = {key.lower(): value for key, value in (positions or {}).items()}
        aliases = {normalize_candidate_text(key): value.lower() for key, value in (aliases or {}).items()}
        records_by_key: dict[str, int] = {}
        for index, record in enumerate(roster):
            if record.member_key and record.member_key not in records_by_key:
                records_by_key[record.member_key] = index

        matches: dict[int, CandidateMatch] = {}
        claimed: set[int] = set()

        for candidate_index, candidate in enumerate(candidates):
            member_key = aliases.get(normalize_candidate_text(candidate.text))
            if member_key is None:
                continue
            record_index = records_by_key.get(member_key)
            if record_index is None or record_index in claimed:
                continue
            claimed.add(record_index)
            matches[candidate_index] = CandidateMatch(
                candidate_index=candidate_index,
                candidate=candidate,
                record=roster[record_index],
                score=1.0,
                source="alias",
            )

        pending_rows = [index for index in range(len(candidates)) if index not in matches]
        open_columns = [index for index in range(len(roster)) if index not in claimed]

        raw_scores: list[list[float]] = []
        matrix: list[list[float]] = []
        for row in pending_rows:
            candidate = candidates[row]
            raw_row: list[float] = []
            matrix_row: list[float] = []
            for column in open_columns:
                record = roster[column]
                raw = best_name_similarity(candidate.text, record)
                bonus = position_bonus(
                    candidate.position_hint,
                    positions.get(record.member_key) if record.member_key else None,
                )
                raw_row.append(raw)
                matrix_row.append(min(1.0, raw + bonus) if raw > 0.0 else 0.0)
            raw_scores.append(raw_row)
            matrix.append(matrix_row)

        assignment = solve_assignment(matrix) if open_columns else [None] * len(pending_rows)

        unmatched: list[UnmatchedCandidate] = []
        for offset, row in enumerate(pending_rows):
            candidate = candidates[row]
            column = assignment[offset]
            if column is not None and raw_scores[offset][column] >= self.threshold:
                matches[row] = CandidateMatch(
                    candidate_index=row,
                    candidate=candidate,
                    record=roster[open_columns[column]],
                    score=raw_scores[offset][column],
                    source="assignment",
                )
                continue
            unmatched.append(self._unmatched(row, candidate, roster))

        return ResolutionReport(
            matches=[matches[index] for index in sorted(matches)],
            unmatched=unmatched,
        )

    def _unmatched(
        self,
        candidate_index: int,
        candidate: CandidateName,
        roster: Sequence[IdentityRecord],
    ) -> UnmatchedCandidate:
        scored = [ScoredRecord(record=record, score=best_name_similarity(candidate.text, record)) for record in roster]
        scored.sort(key=lambda item: item.score, reverse=True)
        best_score = scored[0].score if scored else 0.0
        suggestions = [item for item in scored if item.score >= self.suggestion_min_score]
        return UnmatchedCandidate(
            candidate_index=candidate_index,
            candidate=candidate,
            best_score=best_score,
            suggestions=suggestions[: self.suggestion_limit],
        )
