"""Typed containers shared across the brief workflow.

These dataclasses live in their own module so the stage modules and the
orchestrator can import them without creating circular dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from uuid import UUID


class StepStatus(str, Enum):
    """Lifecycle of a single processing step."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.ERROR)


@dataclass
class ProcessingStep:
    """One stage of the workflow, mutated in place by the orchestrator."""

    id: str
    title: str
    description: str
    status: StepStatus = StepStatus.PENDING
    progress: float | None = None
    duration: float | None = None
    result: str | None = None
    retry_count: int = 0
    started_at: float | None = None
    ended_at: float | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "progress": self.progress,
            "duration": self.duration,
            "result": self.result,
            "retryCount": self.retry_count,
        }


@dataclass
class AudioAsset:
    """Validated audio selected by the user."""

    data: bytes = field(repr=False)
    name: str
    size: int
    media_type: str
    audio_format: str
    playback_url: str | None = None
    duration: float | None = None


@dataclass(frozen=True)
class AudioMetadata:
    """Container facts decoded (or estimated) from an audio payload."""

    duration: float
    bitrate_kbps: int
    sample_rate: int
    channels: int
    mime_type: str
    estimated: bool = False


@dataclass(frozen=True)
class TranscriptionOutcome:
    """Transcript text plus the quality facts returned by the endpoint."""

    text: str
    segments: tuple[Mapping[str, Any], ...] = ()
    word_count: int = 0
    average_confidence: float | None = None
    quality_score: float | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class GeneratedBrief:
    """Brief text plus the executive summary and descriptive scores."""

    brief: str
    summary: str = ""
    template_type: str = "meeting_summary"
    quality_score: float | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SavedRun:
    """Identifiers of the rows written for a completed run."""

    transcript_id: UUID
    brief_id: UUID


@dataclass(frozen=True)
class QuotaSnapshot:
    """Monthly usage for a user; ``limit == -1`` means unlimited."""

    count: int
    limit: int

    @property
    def unlimited(self) -> bool:
        return self.limit == -1

    @property
    def exhausted(self) -> bool:
        return not self.unlimited and self.count >= self.limit


@dataclass(frozen=True)
class ErrorHistoryEntry:
    """One recorded transition into the error state."""

    step_index: int
    error: str
    timestamp: datetime
    retry_attempt: int


@dataclass
class WorkflowMetrics:
    """Rolling metrics refreshed while the workflow is active."""

    processing_speed: float = 0.0
    quality_score: float = 0.0
    confidence_level: float = 0.0
    estimated_time_remaining: float = 0.0


@dataclass(frozen=True)
class WorkflowStats:
    """Aggregate view over the current steps."""

    completed_steps: int
    error_steps: int
    total_steps: int
    total_duration: float
    avg_step_duration: float
    success_rate: float
    total_retries: int


__all__ = [
    "StepStatus",
    "ProcessingStep",
    "AudioAsset",
    "AudioMetadata",
    "TranscriptionOutcome",
    "GeneratedBrief",
    "SavedRun",
    "QuotaSnapshot",
    "ErrorHistoryEntry",
    "WorkflowMetrics",
    "WorkflowStats",
]
