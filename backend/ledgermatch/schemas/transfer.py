"""Order export/import document schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

ORDER_EXPORT_VERSION = 1


class OrderExportMember(BaseModel):
    member_id: str
    display_name: str
    position: int


class OrderExport(BaseModel):
    """Versioned backup of one group's active order."""

    version: int = ORDER_EXPORT_VERSION
    group_key: str
    exported_at: datetime
    member_count: int = Field(ge=0)
    members: list[OrderExportMember] = Field(default_factory=list)


class ImportResult(BaseModel):
    success: bool = False
    imported_count: int = 0
    skipped_count: int = 0
    errors: list[str] = Field(default_factory=list)
