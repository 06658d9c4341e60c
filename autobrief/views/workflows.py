"""Schemas describing a workflow run and its steps."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WorkflowStep(BaseModel):
    id: str
    title: str
    description: str
    status: str = Field(..., description="pending, processing, completed or error")
    progress: Optional[float] = None
    duration: Optional[float] = Field(None, description="Seconds between start and end")
    result: Optional[str] = None
    retry_count: int = 0


class WorkflowMetrics(BaseModel):
    processing_speed: float = Field(..., description="Transcript words per elapsed second")
    quality_score: float
    confidence_level: float
    estimated_time_remaining: float = Field(..., description="Seconds")


class WorkflowStats(BaseModel):
    completed_steps: int
    error_steps: int
    total_steps: int
    total_duration: float
    avg_step_duration: float
    success_rate: float
    total_retries: int


class ErrorHistoryItem(BaseModel):
    step_index: int
    error: str
    timestamp: datetime
    retry_attempt: int


class WorkflowErrorInfo(BaseModel):
    """User-facing description of the most recent failure."""

    title: str
    message: str
    suggestions: List[str] = Field(default_factory=list)
    can_retry: bool
    help_url: Optional[str] = None


class WorkflowAudio(BaseModel):
    name: str
    size: int
    media_type: str
    audio_format: str
    duration: Optional[float] = None
    playback_url: Optional[str] = None


class WorkflowState(BaseModel):
    """Snapshot of a workflow run."""

    id: UUID
    template_id: str
    steps: List[WorkflowStep]
    current_step: int
    progress: float
    is_active: bool
    is_complete: bool
    has_errors: bool
    elapsed_time: float
    metrics: WorkflowMetrics
    stats: WorkflowStats
    error_history: List[ErrorHistoryItem] = Field(default_factory=list)
    error: Optional[WorkflowErrorInfo] = None
    audio: Optional[WorkflowAudio] = None
    transcript: Optional[str] = None
    brief: Optional[str] = None
    summary: Optional[str] = None
    file_url: Optional[str] = None
    transcript_id: Optional[UUID] = None
    brief_id: Optional[UUID] = None
