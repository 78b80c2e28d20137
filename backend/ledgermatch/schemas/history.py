"""Order history and snapshot response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HistoryAction = Literal["manual", "batch-reorder", "ai-reorder", "import", "reset"]


class HistoryEntryRead(BaseModel):
    """Serialized order history entry."""

    model_config = ConfigDict(from_attributes=True)

    entry_id: str
    group_key: str
    action: str
    timestamp: datetime
    description: str
    affected_count: int


class SnapshotMember(BaseModel):
    member_id: str
    display_name: str
    position: int | None


class SnapshotRead(BaseModel):
    """Serialized order snapshot."""

    model_config = ConfigDict(from_attributes=True)

    snapshot_id: str
    group_key: str
    history_entry_id: str
    created_at: datetime
    member_count: int
    entries: list[SnapshotMember] = Field(validation_alias="entries_json")
