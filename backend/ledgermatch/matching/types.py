"""Plain data types shared by the matching and reconciliation code."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

_WRAPPED_ID_RE = re.compile(r"\(([^)]+)\)$")

CORE_FIELDS: tuple[str, ...] = (
    "first_name",
    "surname",
    "other_names",
    "title",
    "primary_id",
    "legacy_id",
)

# Extension fields compared by the reconciliation diff; anything else a
# spreadsheet carries is not part of an identity record.
ATTRIBUTE_FIELDS: tuple[str, ...] = (
    "gender",
    "marital_status",
    "type_of_marriage",
    "age",
    "place_of_birth",
    "hometown",
    "hometown_region",
    "nationality",
    "email",
    "phone_number",
    "whatsapp_number",
    "other_phone_numbers",
    "postal_address",
    "residential_address",
    "zip_code",
    "digital_address",
    "baptized_by",
    "place_of_baptism",
    "date_of_baptism",
    "previous_denomination",
    "languages_spoken",
    "spiritual_gifts",
    "level_of_education",
    "course_studied",
    "type_of_employment",
    "place_of_work",
    "profession",
    "is_communicant",
)

MatchType = Literal["by_current_id", "by_legacy_id"]
MatchSource = Literal["alias", "assignment"]


def parse_member_id(raw: str | None) -> str:
    """Return the bare identifier, unwrapping values like ``"Ama Mensah (TAC123)"``."""

    if not raw:
        return ""
    trimmed = str(raw).strip()
    match = _WRAPPED_ID_RE.search(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def split_id_parts(raw: str | None) -> list[str]:
    """Split a pipe-delimited composite identifier into its non-empty parts."""

    parsed = parse_member_id(raw)
    if not parsed:
        return []
    return [part.strip() for part in parsed.split("|") if part.strip()]


@dataclass(frozen=True, slots=True)
class IdentityRecord:
    """One known person as supplied by the roster parsing step."""

    primary_id: str | None = None
    legacy_id: str | None = None
    first_name: str = ""
    surname: str = ""
    other_names: str = ""
    title: str = ""
    custom_order: int | None = None
    attributes: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.attributes) - set(ATTRIBUTE_FIELDS)
        if unknown:
            raise ValueError(f"Unsupported identity attributes: {', '.join(sorted(unknown))}")

    @property
    def current_id(self) -> str:
        return parse_member_id(self.primary_id)

    @property
    def old_id(self) -> str:
        return parse_member_id(self.legacy_id)

    @property
    def has_identifier(self) -> bool:
        return bool(self.current_id or self.old_id)

    @property
    def member_id(self) -> str | None:
        """Identifier used by the order and alias stores."""

        return self.current_id or self.old_id or None

    @property
    def member_key(self) -> str | None:
        member_id = self.member_id
        return member_id.lower() if member_id else None

    @property
    def display_name(self) -> str:
        parts = [self.title, self.first_name, self.surname, self.other_names]
        name = " ".join(part.strip() for part in parts if part and part.strip())
        return name or (self.member_id or "")

    def name_variants(self) -> list[str]:
        """Orderings of the name parts a ledger entry might be written in."""

        first = self.first_name.strip()
        surname = self.surname.strip()
        other = self.other_names.strip()
        variants = [
            f"{first} {surname}",
            f"{surname} {first}",
            f"{first} {other} {surname}",
            f"{surname} {first} {other}",
        ]
        seen: list[str] = []
        for variant in variants:
            cleaned = " ".join(variant.split())
            if cleaned and cleaned not in seen:
                seen.append(cleaned)
        return seen

    def field_value(self, name: str) -> str:
        """Trimmed string value of a core or extension field."""

        if name in CORE_FIELDS:
            value = getattr(self, name)
        else:
            value = self.attributes.get(name)
        return "" if value is None else str(value).strip()


@dataclass(frozen=True, slots=True)
class CandidateName:
    """A raw name observed by OCR or typed in manually."""

    text: str
    position_hint: int | None = None
    confidence: float | None = None


@dataclass(slots=True)
class ScoredRecord:
    """A roster record with its raw similarity to a candidate."""

    record: IdentityRecord
    score: float


@dataclass(slots=True)
class CandidateMatch:
    """A candidate accepted as referring to a roster record."""

    candidate_index: int
    candidate: CandidateName
    record: IdentityRecord
    score: float
    source: MatchSource


@dataclass(slots=True)
class UnmatchedCandidate:
    """A candidate left for a human to resolve, with ranked suggestions."""

    candidate_index: int
    candidate: CandidateName
    best_score: float
    suggestions: list[ScoredRecord] = field(default_factory=list)


@dataclass(slots=True)
class ResolutionReport:
    """Outcome of one resolver pass; every candidate appears exactly once."""

    matches: list[CandidateMatch] = field(default_factory=list)
    unmatched: list[UnmatchedCandidate] = field(default_factory=list)

    @property
    def alias_hits(self) -> list[CandidateMatch]:
        return [match for match in self.matches if match.source == "alias"]


@dataclass(frozen=True, slots=True)
class FieldChange:
    field: str
    old_value: str
    new_value: str


@dataclass(slots=True)
class MatchedMember:
    member_id: str
    master_record: IdentityRecord
    new_record: IdentityRecord
    match_type: MatchType


@dataclass(slots=True)
class ChangedMember:
    member_id: str
    master_record: IdentityRecord
    new_record: IdentityRecord
    match_type: MatchType
    changes: list[FieldChange] = field(default_factory=list)


@dataclass(slots=True)
class ConflictingMember:
    """A new record with no ID match whose name collides with a master record."""

    new_record: IdentityRecord
    existing_record: IdentityRecord


@dataclass(slots=True)
class ReconciliationReport:
    matched: list[MatchedMember] = field(default_factory=list)
    changed: list[ChangedMember] = field(default_factory=list)
    new_members: list[IdentityRecord] = field(default_factory=list)
    conflicts: list[ConflictingMember] = field(default_factory=list)
    unidentifiable_new: list[IdentityRecord] = field(default_factory=list)
    unidentifiable_master: list[IdentityRecord] = field(default_factory=list)
    missing_from_upload: list[IdentityRecord] = field(default_factory=list)
