"""SQLAlchemy model for user-defined brief templates."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, String, Text, Uuid

from autobrief.models.base import Base, JsonColumnType
from autobrief.models.transcript import utc_now


class CustomTemplate(Base):
    __tablename__ = "custom_templates"

    id = Column(String(64), primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default="Custom")
    prompt_instructions = Column(Text, nullable=False)
    output_structure = Column(JsonColumnType, nullable=False, default=list)
    contextual_prompts = Column(JsonColumnType, nullable=False, default=dict)
    customizations = Column(JsonColumnType, nullable=False, default=dict)
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


__all__ = ["CustomTemplate"]
