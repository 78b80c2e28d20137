"""Member order request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from ledgermatch.schemas.identity import IdentityRecordIn


class OrderEntryRead(BaseModel):
    """Serialized order entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_key: str
    member_id: str
    display_name: str
    position: int | None
    first_seen_at: datetime
    first_seen_month: str
    last_updated_at: datetime
    is_active: bool


class OrderGroupRead(BaseModel):
    """Serialized per-group sync metadata."""

    model_config = ConfigDict(from_attributes=True)

    group_key: str
    total_members: int
    last_synced_at: datetime
    roster_hash: str


class RosterRequest(BaseModel):
    """Ordered roster used to seed, sync or reset a group's order."""

    records: list[IdentityRecordIn]
    deactivate_missing: bool = False


class PositionUpdate(BaseModel):
    """One requested position write."""

    member_id: str = Field(min_length=1)
    position: int = Field(ge=1)


class PositionUpdateRequest(BaseModel):
    position: int = Field(ge=1)


class BatchUpdateRequest(BaseModel):
    updates: list[PositionUpdate]
    action: Literal["batch-reorder", "ai-reorder"] = "batch-reorder"
    description: str | None = None


class ReorderApplyRequest(BaseModel):
    """Proposed positions plus the subset of members the user accepted."""

    proposed: list[PositionUpdate]
    selected_member_ids: list[str] | None = None


class InitializeResult(BaseModel):
    group_key: str
    member_count: int
    skipped_count: int
    snapshot_id: str | None
    history_entry_id: str


class SyncResult(BaseModel):
    group_key: str
    new_member_ids: list[str] = Field(default_factory=list)
    existing_member_ids: list[str] = Field(default_factory=list)
    deactivated_member_ids: list[str] = Field(default_factory=list)
    skipped_count: int = 0
    total_processed: int = 0


class PositionUpdateResult(BaseModel):
    member_id: str
    old_position: int | None
    new_position: int
    swapped_with_member_id: str | None
    history_entry_id: str


class DuplicatePosition(BaseModel):
    position: int
    member_ids: list[str]


class IntegrityReport(BaseModel):
    """Result of a positional integrity scan for one group."""

    is_healthy: bool
    group_key: str
    duplicate_positions: list[DuplicatePosition] = Field(default_factory=list)
    orphaned_member_ids: list[str] = Field(default_factory=list)
    total_members: int = 0
    repaired_count: int = 0
    checked_at: datetime


class BatchUpdateResult(BaseModel):
    group_key: str
    updated_count: int
    skipped_member_ids: list[str] = Field(default_factory=list)
    snapshot_id: str
    history_entry_id: str
    integrity: IntegrityReport


class ResetResult(BaseModel):
    group_key: str
    reset_count: int
    skipped_count: int
    snapshot_id: str
    history_entry_id: str
    integrity: IntegrityReport


class RestoreResult(BaseModel):
    snapshot_id: str
    group_key: str
    restored_count: int
    undo_snapshot_id: str
    history_entry_id: str


class OrderChange(BaseModel):
    """Difference between a member's persisted and proposed position."""

    member_id: str
    display_name: str | None
    current_position: int | None
    proposed_position: int
    status: Literal["moved", "unchanged", "unknown"]
