"""Pydantic schemas used as views in the MVC architecture."""

from .briefs import BriefDetail, BriefSummary, BriefUpdateRequest
from .common import ErrorResponse, HealthResponse
from .functions import (
    GenerateBriefFailure,
    GenerateBriefOptions,
    GenerateBriefRequest,
    GenerateBriefResponse,
    TranscribeAudioRequest,
    TranscribeAudioResponse,
    TranscriptionFailure,
    TranscriptionOptions,
)
from .profile import UsageResponse
from .templates import TemplateCreateRequest, TemplateResponse, TemplateUpdateRequest
from .workflows import WorkflowState

__all__ = [
    "BriefDetail",
    "BriefSummary",
    "BriefUpdateRequest",
    "ErrorResponse",
    "HealthResponse",
    "GenerateBriefFailure",
    "GenerateBriefOptions",
    "GenerateBriefRequest",
    "GenerateBriefResponse",
    "TranscribeAudioRequest",
    "TranscribeAudioResponse",
    "TranscriptionFailure",
    "TranscriptionOptions",
    "UsageResponse",
    "TemplateCreateRequest",
    "TemplateResponse",
    "TemplateUpdateRequest",
    "WorkflowState",
]
