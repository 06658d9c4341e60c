"""Audio-to-brief workflow package.

Modules are organised by the order in which a workflow run executes:

1. `ingestion` – validate size/format and read the uploaded bytes.
2. `metadata` – probe duration and bitrate (or estimate them).
3. `transcription` – call `/functions/transcribe-audio-enhanced`.
4. `generation` – call `/functions/generate-brief`.
5. `storage` – copy the raw audio to S3 (best effort).
6. `workflow` – the orchestrator that records step state and retries.

The controllers import from here so contributors can jump straight to the
relevant stage without wading through a single monolithic file.
"""

from .endpoints import functions_client_factory
from .errors import (
    AudioValidationError,
    ErrorInfo,
    ErrorKind,
    GenerationError,
    PersistenceError,
    QuotaExceededError,
    StorageUploadError,
    TranscriptionError,
    WorkflowError,
    WorkflowStateError,
    describe_error,
)
from .flow import BriefWorkflowPipeline, PipelineStage
from .generation import BriefGeneratorClient
from .ingestion import read_audio_bytes, resolve_content_type, validate_audio
from .metadata import extract_metadata
from .playback import playback_urls
from .quota import check_quota
from .storage import store_audio
from .transcription import TranscriptionClient
from .types import AudioAsset, ProcessingStep, StepStatus
from .workflow import BriefWorkflow

__all__ = [
    "AudioAsset",
    "AudioValidationError",
    "BriefGeneratorClient",
    "BriefWorkflow",
    "BriefWorkflowPipeline",
    "ErrorInfo",
    "ErrorKind",
    "GenerationError",
    "PersistenceError",
    "PipelineStage",
    "ProcessingStep",
    "QuotaExceededError",
    "StepStatus",
    "StorageUploadError",
    "TranscriptionClient",
    "TranscriptionError",
    "WorkflowError",
    "WorkflowStateError",
    "check_quota",
    "describe_error",
    "extract_metadata",
    "functions_client_factory",
    "playback_urls",
    "read_audio_bytes",
    "resolve_content_type",
    "store_audio",
    "validate_audio",
]
