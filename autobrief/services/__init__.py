"""Service layer helpers for external integrations."""

from .aws import ProviderConfigurationError
from .brief_generation import (
    BriefGenerationError,
    BriefGenerationResult,
    BriefGenerationService,
    get_brief_generation_service,
)
from .llm_client import BedrockLlmClient, LlmInvocationError
from .storage import StorageError, upload_user_audio
from .transcribe import (
    TranscribeService,
    TranscriptionResult,
    TranscriptionServiceError,
    get_transcribe_service,
)

__all__ = [
    "BedrockLlmClient",
    "BriefGenerationError",
    "BriefGenerationResult",
    "BriefGenerationService",
    "LlmInvocationError",
    "ProviderConfigurationError",
    "StorageError",
    "TranscribeService",
    "TranscriptionResult",
    "TranscriptionServiceError",
    "get_brief_generation_service",
    "get_transcribe_service",
    "upload_user_audio",
]
