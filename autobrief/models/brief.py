"""SQLAlchemy model for generated briefs."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from autobrief.models.base import Base, JsonColumnType
from autobrief.models.transcript import utc_now


class Brief(Base):
    __tablename__ = "briefs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, nullable=False)
    transcript_id = Column(
        Uuid,
        ForeignKey("transcripts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    template = Column(String(100), nullable=False)
    content_md = Column(Text, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=utc_now,
    )
    sent = Column(Boolean, nullable=False, default=False)
    quality_score = Column(Float, nullable=True)
    processing_time_ms = Column(Integer, nullable=True)
    metadata_ = Column("metadata", JsonColumnType, nullable=False, default=dict)

    transcript = relationship("Transcript", back_populates="briefs", lazy="joined")


__all__ = ["Brief"]
