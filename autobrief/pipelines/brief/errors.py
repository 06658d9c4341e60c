"""Typed failures raised by the workflow stages.

Each stage builds the error at the point it detects the failure, tagged with
an :class:`ErrorKind`. The orchestrator and the HTTP layer read the tag to
decide whether a retry makes sense and which remediation copy to show.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from autobrief.config.settings import settings


class ErrorKind(str, Enum):
    """Origin of a workflow failure."""

    NETWORK = "network"
    QUOTA = "quota"
    CONTENT = "content"
    VALIDATION = "validation"
    PERSISTENCE = "persistence"


_RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.CONTENT})


class WorkflowError(RuntimeError):
    """Base class for failures reported by workflow stages."""

    default_kind: ErrorKind = ErrorKind.NETWORK

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind or self.default_kind

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE_KINDS


class AudioValidationError(WorkflowError):
    """Raised when an audio file breaks the size/format/duration rules."""

    default_kind = ErrorKind.VALIDATION


class TranscriptionError(WorkflowError):
    """Raised when the transcription endpoint fails or returns unusable text."""


class GenerationError(WorkflowError):
    """Raised when brief generation fails or returns unusable text."""


class QuotaExceededError(WorkflowError):
    """Raised when the user has used up their monthly brief allowance."""

    default_kind = ErrorKind.QUOTA

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(
            f"Monthly limit reached ({count}/{limit}). Please upgrade your plan."
        )
        self.count = count
        self.limit = limit


class PersistenceError(WorkflowError):
    """Raised when the relational store rejects a write."""

    default_kind = ErrorKind.PERSISTENCE


class StorageUploadError(WorkflowError):
    """Raised when the raw audio could not be copied to object storage."""


class WorkflowStateError(RuntimeError):
    """Raised when an orchestrator operation is called in the wrong state."""


@dataclass(frozen=True)
class ErrorInfo:
    """User-facing description of a failure."""

    title: str
    message: str
    suggestions: list[str] = field(default_factory=list)
    can_retry: bool = False
    help_url: str | None = None


_ERROR_COPY: dict[ErrorKind, tuple[str, list[str], str]] = {
    ErrorKind.NETWORK: (
        "Connection Error",
        [
            "Check your internet connection",
            "Try again in a few moments",
            "Contact support if the problem persists",
        ],
        "connection-issues",
    ),
    ErrorKind.QUOTA: (
        "Usage Limit Reached",
        [
            "Upgrade to a higher plan for more briefs",
            "Wait for your monthly limit to reset",
            "Contact sales for enterprise options",
        ],
        "upgrade-plan",
    ),
    ErrorKind.VALIDATION: (
        "File Processing Error",
        [
            "Ensure your file is in a supported format (MP3, WAV, M4A, OGG, OPUS, FLAC, AAC, WEBM)",
            f"Check that your file is under {settings.workflow.max_file_size_bytes // (1024 * 1024)}MB",
            "Try converting your file to MP3 format",
        ],
        "audio-requirements",
    ),
    ErrorKind.CONTENT: (
        "Processing Failed",
        [
            "Ensure your audio has clear speech",
            "Try reducing background noise",
            "Check that the audio is in a supported language",
        ],
        "transcription-tips",
    ),
    ErrorKind.PERSISTENCE: (
        "Save Failed",
        [
            "Your transcript and brief are still shown on screen",
            "Copy the brief before leaving this page",
            "Try saving again in a few moments",
        ],
        "contact",
    ),
}


def describe_error(exc: BaseException) -> ErrorInfo:
    """Map a failure onto the title, suggestions, and help link shown to users."""

    base_url = settings.help_center_url.rstrip("/")
    if not isinstance(exc, WorkflowError):
        return ErrorInfo(
            title="Unexpected Error",
            message=str(exc) or "Something went wrong.",
            suggestions=[
                "Try refreshing the page",
                "Try again with a different file",
                "Contact support with details of what happened",
            ],
            can_retry=True,
            help_url=f"{base_url}/contact",
        )

    title, suggestions, slug = _ERROR_COPY[exc.kind]
    return ErrorInfo(
        title=title,
        message=str(exc),
        suggestions=list(suggestions),
        can_retry=exc.retryable,
        help_url=f"{base_url}/{slug}",
    )


__all__ = [
    "ErrorKind",
    "ErrorInfo",
    "WorkflowError",
    "AudioValidationError",
    "TranscriptionError",
    "GenerationError",
    "QuotaExceededError",
    "PersistenceError",
    "StorageUploadError",
    "WorkflowStateError",
    "describe_error",
]
