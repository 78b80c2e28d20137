"""Learned alias request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AliasCreate(BaseModel):
    """A human-confirmed OCR name → member mapping."""

    raw_text: str = Field(min_length=1)
    member_id: str = Field(min_length=1)
    display_name: str = ""


class AliasRead(BaseModel):
    """Serialized learned alias."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_key: str
    normalized_text: str
    member_id: str
    display_name: str
    usage_count: int
    created_at: datetime
    last_used_at: datetime
