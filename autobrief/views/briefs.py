"""Schemas for saved briefs."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BriefSummary(BaseModel):
    """History list entry."""

    id: UUID
    transcript_id: UUID
    template: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    sent: bool = False
    quality_score: Optional[float] = None
    preview: str = Field(..., description="First characters of the brief body")


class BriefDetail(BaseModel):
    id: UUID
    transcript_id: UUID
    template: str
    content_md: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    sent: bool = False
    quality_score: Optional[float] = None
    processing_time_ms: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    transcript_text: Optional[str] = None
    original_file_url: Optional[str] = None


class BriefUpdateRequest(BaseModel):
    content_md: str = Field(..., min_length=1, description="Edited Markdown body, stored verbatim")
