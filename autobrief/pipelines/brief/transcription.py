"""Transcription stage: hand the bound audio to the transcription endpoint."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Callable, Mapping

import httpx

from autobrief.config.settings import settings

from .endpoints import TRANSCRIBE_PATH, ClientFactory, post_json
from .errors import AudioValidationError, ErrorKind, TranscriptionError
from .ingestion import infer_audio_format
from .types import AudioAsset, TranscriptionOutcome

logger = logging.getLogger("autobrief.pipeline")

ProgressCallback = Callable[[float], None]

PROGRESS_ENCODING = 20
PROGRESS_ENCODED = 40
PROGRESS_FORMAT_KNOWN = 50
PROGRESS_DONE = 100


def default_transcription_options(language_code: str | None = None) -> dict[str, Any]:
    """Fixed option bundle sent with every transcription request."""

    return {
        "enableSpeakerDiarization": False,
        "enableProfanityFilter": False,
        "languageCode": language_code or settings.transcribe.default_language_code,
        "enableWordTimeOffsets": False,
        "enableAutomaticPunctuation": True,
        "model": "latest_long",
        "useEnhanced": True,
    }


def encode_data_url(data: bytes, media_type: str) -> str:
    """Return ``data`` as a base64 data URL."""

    try:
        encoded = base64.b64encode(data).decode("ascii")
    except (TypeError, binascii.Error) as exc:
        raise TranscriptionError(
            f"Failed to encode audio: {exc}", kind=ErrorKind.VALIDATION
        ) from exc
    return f"data:{media_type};base64,{encoded}"


def _report(on_progress: ProgressCallback | None, value: float) -> None:
    if on_progress is not None:
        on_progress(value)


class TranscriptionClient:
    """Convert an :class:`AudioAsset` into transcript text via the remote endpoint."""

    def __init__(
        self,
        client_factory: ClientFactory,
        *,
        language_code: str | None = None,
        max_size_bytes: int | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._language_code = language_code
        self._max_size_bytes = max_size_bytes or settings.workflow.max_file_size_bytes

    async def transcribe(
        self,
        asset: AudioAsset,
        on_progress: ProgressCallback | None = None,
    ) -> TranscriptionOutcome:
        if not asset.data:
            raise AudioValidationError("No audio data to transcribe.")
        if asset.size > self._max_size_bytes:
            raise AudioValidationError(
                f"File size must be less than {self._max_size_bytes // (1024 * 1024)}MB"
            )

        _report(on_progress, PROGRESS_ENCODING)
        data_url = encode_data_url(asset.data, asset.media_type)
        _report(on_progress, PROGRESS_ENCODED)

        audio_format = asset.audio_format or infer_audio_format(asset.media_type)
        _report(on_progress, PROGRESS_FORMAT_KNOWN)

        payload = {
            "audioData": data_url,
            "audioFormat": audio_format,
            "options": default_transcription_options(self._language_code),
            "originalFilename": asset.name,
            "fileSizeBytes": asset.size,
        }

        logger.info(
            "Transcription request name=%s format=%s bytes=%s",
            asset.name,
            audio_format,
            asset.size,
        )
        try:
            status_code, body = await post_json(self._client_factory, TRANSCRIBE_PATH, payload)
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Transcription request failed: {exc}") from exc

        outcome = _parse_response(status_code, body)
        _report(on_progress, PROGRESS_DONE)
        return outcome


def _parse_response(status_code: int, body: Any) -> TranscriptionOutcome:
    if not isinstance(body, Mapping):
        if status_code >= 400:
            raise TranscriptionError(f"Transcription service returned HTTP {status_code}")
        raise TranscriptionError(
            "No data received from transcription service", kind=ErrorKind.CONTENT
        )

    if body.get("error") or body.get("success") is False or status_code >= 400:
        message = body.get("error") or f"HTTP {status_code}"
        raise TranscriptionError(f"Transcription failed: {message}")

    text = str(body.get("fullText") or "").strip()
    if not text:
        raise TranscriptionError(
            "No transcription text received", kind=ErrorKind.CONTENT
        )

    metadata = body.get("metadata") if isinstance(body.get("metadata"), Mapping) else {}
    segments = body.get("segments") if isinstance(body.get("segments"), list) else []
    return TranscriptionOutcome(
        text=text,
        segments=tuple(seg for seg in segments if isinstance(seg, Mapping)),
        word_count=int(metadata.get("wordCount") or len(text.split())),
        average_confidence=metadata.get("averageConfidence"),
        quality_score=body.get("qualityScore"),
        warnings=tuple(str(item) for item in body.get("warnings") or ()),
    )


__all__ = [
    "ProgressCallback",
    "TranscriptionClient",
    "default_transcription_options",
    "encode_data_url",
]
