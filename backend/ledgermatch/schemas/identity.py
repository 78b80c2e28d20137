"""Identity matching and reconciliation request/response schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledgermatch.matching.types import ATTRIBUTE_FIELDS, CandidateName, IdentityRecord


class IdentityRecordIn(BaseModel):
    """Roster row as supplied by the spreadsheet parser."""

    primary_id: str | None = None
    legacy_id: str | None = None
    first_name: str = ""
    surname: str = ""
    other_names: str = ""
    title: str = ""
    custom_order: int | None = None
    attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator("attributes")
    @classmethod
    def validate_attribute_names(cls, value: dict[str, str]) -> dict[str, str]:
        unknown = sorted(set(value) - set(ATTRIBUTE_FIELDS))
        if unknown:
            raise ValueError(f"Unsupported attributes: {', '.join(unknown)}")
        return value

    def to_record(self) -> IdentityRecord:
        return IdentityRecord(**self.model_dump())


class IdentityRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    primary_id: str | None
    legacy_id: str | None
    first_name: str
    surname: str
    other_names: str
    title: str
    custom_order: int | None
    attributes: dict[str, str]
    display_name: str


class CandidateNameIn(BaseModel):
    text: str
    position_hint: int | None = Field(default=None, ge=1)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    def to_candidate(self) -> CandidateName:
        return CandidateName(text=self.text, position_hint=self.position_hint, confidence=self.confidence)


class MatchRequest(BaseModel):
    candidates: list[CandidateNameIn]
    roster: list[IdentityRecordIn]
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class ConfirmMatchRequest(BaseModel):
    raw_text: str = Field(min_length=1)
    record: IdentityRecordIn


class CandidateNameRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    text: str
    position_hint: int | None
    confidence: float | None


class ScoredRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    record: IdentityRecordRead
    score: float


class CandidateMatchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_index: int
    candidate: CandidateNameRead
    record: IdentityRecordRead
    score: float
    source: str


class UnmatchedCandidateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_index: int
    candidate: CandidateNameRead
    best_score: float
    suggestions: list[ScoredRecordRead]


class ResolutionReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    matches: list[CandidateMatchRead]
    unmatched: list[UnmatchedCandidateRead]


class ReconcileRequest(BaseModel):
    new_roster: list[IdentityRecordIn]
    master_roster: list[IdentityRecordIn]


class FieldChangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    field: str
    old_value: str
    new_value: str


class MatchedMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: str
    master_record: IdentityRecordRead
    new_record: IdentityRecordRead
    match_type: str


class ChangedMemberRead(MatchedMemberRead):
    changes: list[FieldChangeRead]


class ConflictingMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    new_record: IdentityRecordRead
    existing_record: IdentityRecordRead


class ReconciliationReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    matched: list[MatchedMemberRead]
    changed: list[ChangedMemberRead]
    new_members: list[IdentityRecordRead]
    conflicts: list[ConflictingMemberRead]
    unidentifiable_new: list[IdentityRecordRead]
    unidentifiable_master: list[IdentityRecordRead]
    missing_from_upload: list[IdentityRecordRead]
