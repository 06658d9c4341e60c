"""Transcription and brief-generation endpoints.

Both routes keep the wire contract of the hosted functions the workflow
calls: CORS-open, an empty 200 for ``OPTIONS``, and HTTP 500 with a
``success: false`` body for every failure.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Annotated, Union
from uuid import uuid4

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from autobrief.controllers.dependencies import CurrentUserDep
from autobrief.pipelines.brief.ingestion import EXTENSION_MIME_TYPES
from autobrief.services.aws import ProviderConfigurationError
from autobrief.services.brief_generation import (
    BriefGenerationError,
    BriefGenerationService,
    get_brief_generation_service,
)
from autobrief.services.llm_client import LlmInvocationError
from autobrief.services.transcribe import (
    TranscribeService,
    TranscriptionServiceError,
    compute_quality_score,
    decode_audio_data,
    error_suggestions,
    get_transcribe_service,
    transcription_warnings,
)
from autobrief.telemetry import record_function_failure
from autobrief.views.functions import (
    GenerateBriefFailure,
    GenerateBriefRequest,
    GenerateBriefResponse,
    TranscribeAudioRequest,
    TranscribeAudioResponse,
    TranscriptionFailure,
    TranscriptMetadata,
    TranscriptSegment,
)

router = APIRouter(prefix="/functions", tags=["functions"])

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

TranscribeServiceDep = Annotated[TranscribeService, Depends(get_transcribe_service)]
BriefServiceDep = Annotated[BriefGenerationService, Depends(get_brief_generation_service)]


@router.options("/transcribe-audio-enhanced")
async def transcribe_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post(
    "/transcribe-audio-enhanced",
    response_model=TranscribeAudioResponse,
    responses={500: {"model": TranscriptionFailure}},
)
async def transcribe_audio_enhanced(
    payload: TranscribeAudioRequest,
    response: Response,
    _current_user: CurrentUserDep,
    service: TranscribeServiceDep,
) -> Union[TranscribeAudioResponse, JSONResponse]:
    """Transcribe a base64 audio payload with Amazon Transcribe."""

    request_id = str(uuid4())
    started = time.monotonic()
    logger.info("[%s] Starting transcription format=%s", request_id, payload.audioFormat)

    try:
        if not payload.audioData:
            raise TranscriptionServiceError("No audio data provided", reason="upload")
        audio_bytes = decode_audio_data(payload.audioData)
        audio_format = (payload.audioFormat or "mp3").lower()
        result = await service.transcribe(
            audio_bytes,
            audio_format=audio_format,
            content_type=EXTENSION_MIME_TYPES.get(audio_format, "audio/mpeg"),
            language_code=payload.options.languageCode,
            enable_speaker_diarization=payload.options.enableSpeakerDiarization,
            request_id=request_id,
        )
    except TranscriptionServiceError as exc:
        return _transcription_failure(request_id, str(exc), exc.reason)
    except ProviderConfigurationError as exc:
        return _transcription_failure(request_id, str(exc), "auth")
    except Exception as exc:
        logger.exception("[%s] Unexpected transcription failure", request_id)
        return _transcription_failure(request_id, str(exc) or "Transcription failed", "provider")

    quality = compute_quality_score(result.average_confidence, result.word_count)
    response.headers.update(CORS_HEADERS)
    return TranscribeAudioResponse(
        id=request_id,
        fullText=result.full_text,
        segments=[TranscriptSegment(**segment) for segment in result.segments],
        metadata=TranscriptMetadata(
            duration=result.duration,
            wordCount=result.word_count,
            speakerCount=result.speaker_count,
            averageConfidence=result.average_confidence,
            languageDetected=result.language_detected,
            processingTime=int((time.monotonic() - started) * 1000),
        ),
        qualityScore=quality,
        warnings=transcription_warnings(result.word_count, result.average_confidence),
    )


def _transcription_failure(request_id: str, message: str, reason: str) -> JSONResponse:
    logger.error("[%s] Error: %s", request_id, message)
    record_function_failure("transcribe", reason)
    body = TranscriptionFailure(
        error=message,
        requestId=request_id,
        suggestions=error_suggestions(reason),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
        headers=CORS_HEADERS,
    )


@router.options("/generate-brief")
async def generate_brief_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)


@router.post(
    "/generate-brief",
    response_model=GenerateBriefResponse,
    responses={500: {"model": GenerateBriefFailure}},
)
async def generate_brief(
    payload: GenerateBriefRequest,
    response: Response,
    _current_user: CurrentUserDep,
    service: BriefServiceDep,
) -> Union[GenerateBriefResponse, JSONResponse]:
    """Generate a templated brief plus executive summary with Bedrock."""

    request_id = str(uuid4())
    try:
        result = await service.generate(
            payload.transcriptionText or "",
            payload.options.model_dump(exclude_none=True),
            request_id=request_id,
        )
    except (BriefGenerationError, LlmInvocationError, ProviderConfigurationError) as exc:
        return _generation_failure(request_id, str(exc), exc.__class__.__name__)
    except Exception as exc:
        logger.exception("[%s] Unexpected brief generation failure", request_id)
        return _generation_failure(request_id, str(exc) or "Brief generation failed", "unexpected")

    response.headers.update(CORS_HEADERS)
    return GenerateBriefResponse(
        brief=result.brief,
        summary=result.summary,
        templateType=result.template_type,
        briefWordCount=result.brief_word_count,
        summaryWordCount=result.summary_word_count,
        totalWordCount=result.brief_word_count + result.summary_word_count,
        qualityScore=result.quality_score,
        briefQualityScore=result.brief_quality_score,
        summaryQualityScore=result.summary_quality_score,
        metadata=result.metadata,
    )


def _generation_failure(request_id: str, message: str, reason: str) -> JSONResponse:
    logger.error("[%s] Error in generate-brief: %s", request_id, message)
    record_function_failure("generate_brief", reason)
    body = GenerateBriefFailure(
        error=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
        headers=CORS_HEADERS,
    )
