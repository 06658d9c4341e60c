"""SQLAlchemy model for persisted transcripts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from autobrief.models.base import Base, JsonColumnType


def utc_now() -> datetime:
    """Return the current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


class Transcript(Base):
    __tablename__ = "transcripts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    original_text = Column(Text, nullable=False)
    source_type = Column(String(50), nullable=False, default="audio_upload")
    original_file_url = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    metadata_ = Column("metadata", JsonColumnType, nullable=False, default=dict)

    # Briefs are deleted independently; the transcript never cascades down.
    briefs = relationship("Brief", back_populates="transcript", passive_deletes=True)


__all__ = ["Transcript", "utc_now"]
