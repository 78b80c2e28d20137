"""Learned OCR-name alias model."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledgermatch.models.base import Base, CreatedAtMixin, IdMixin, utcnow


class LearnedAlias(Base, IdMixin, CreatedAtMixin):
    """User-confirmed mapping from a handwritten name variant to a member."""

    __tablename__ = "learned_aliases"
    __table_args__ = (UniqueConstraint("group_key", "normalized_text", name="uq_learned_aliases_group_text"),)

    group_key: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    normalized_text: Mapped[str] = mapped_column(String(255), nullable=False)
    member_id: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
