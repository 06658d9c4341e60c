"""Amazon Transcribe integration helpers using batch transcription jobs."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Sequence
from uuid import uuid4

import httpx
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from autobrief.config.settings import settings
from autobrief.services.aws import ProviderConfigurationError, create_boto3_client

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9
LOW_CONFIDENCE_THRESHOLD = 0.7
SHORT_TRANSCRIPT_WORDS = 10

_DATA_URL_PREFIX = re.compile(r"^data:[^;,]*;base64,")

# Transcribe only accepts these container names for MediaFormat.
_MEDIA_FORMATS = {
    "mp3": "mp3",
    "wav": "wav",
    "m4a": "m4a",
    "aac": "mp4",
    "ogg": "ogg",
    "opus": "ogg",
    "flac": "flac",
    "webm": "webm",
}

_AUTH_ERROR_CODES = frozenset(
    {
        "AccessDeniedException",
        "AccessDenied",
        "UnrecognizedClientException",
        "InvalidSignatureException",
        "ExpiredTokenException",
    }
)

_SUGGESTIONS: dict[str, list[str]] = {
    "no_speech": [
        "Ensure audio contains clear human speech",
        "Check audio volume is audible",
        "Try with a longer audio recording",
        "Reduce background noise",
    ],
    "auth": [
        "Check the AWS credentials configured for Transcribe",
        "Verify the credentials are valid and active",
        "Ensure the IAM policy allows transcription jobs",
    ],
    "upload": [
        "Try with a smaller audio file",
        "Convert audio to MP3 format",
        "Check audio file is not corrupted",
    ],
    "timeout": [
        "Try with a shorter audio file",
        "Check your internet connection",
        "Try again in a few minutes",
    ],
}

SleepFn = Callable[[float], Awaitable[Any]]


class TranscriptionServiceError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully.

    ``reason`` is one of ``no_speech``, ``auth``, ``upload``, ``timeout`` or
    ``provider`` and selects the remediation copy returned to callers.
    """

    def __init__(self, message: str, *, reason: str = "provider") -> None:
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class TranscriptionResult:
    """Structured transcription outcome returned to the endpoint."""

    full_text: str
    segments: list[dict[str, Any]] = field(default_factory=list)
    word_count: int = 0
    speaker_count: int = 1
    average_confidence: float = DEFAULT_CONFIDENCE
    duration: str = "00:00:00"
    language_detected: str | None = None
    job_name: str | None = None
    attempts: int = 0


def format_timestamp(seconds: float) -> str:
    """Render seconds as ``HH:MM:SS``."""

    total = int(max(seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def compute_quality_score(average_confidence: float, word_count: int) -> float:
    return min(1.0, average_confidence * (1 if word_count > SHORT_TRANSCRIPT_WORDS else 0.8))


def transcription_warnings(word_count: int, average_confidence: float) -> list[str]:
    warnings: list[str] = []
    if average_confidence < LOW_CONFIDENCE_THRESHOLD:
        warnings.append("Low confidence in transcription. Consider using clearer audio.")
    if word_count < SHORT_TRANSCRIPT_WORDS:
        warnings.append("Short transcription. Ensure audio contains sufficient speech.")
    return warnings


def error_suggestions(reason: str | None) -> list[str]:
    return list(_SUGGESTIONS.get(reason or "", []))


def decode_audio_data(audio_data: str) -> bytes:
    """Decode a base64 payload, with or without a ``data:`` URL prefix."""

    stripped = _DATA_URL_PREFIX.sub("", (audio_data or "").strip())
    try:
        decoded = base64.b64decode(stripped, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise TranscriptionServiceError(
            "Audio data is not valid base64.", reason="upload"
        ) from exc
    if not decoded:
        raise TranscriptionServiceError("No audio data provided", reason="upload")
    return decoded


def _speaker_name(label: str | None) -> str:
    if not label:
        return "Speaker 1"
    digits = label.rsplit("_", 1)[-1]
    if digits.isdigit():
        return f"Speaker {int(digits) + 1}"
    return f"Speaker {label}"


def _item_confidence(item: Mapping[str, Any]) -> float | None:
    alternatives = item.get("alternatives") or []
    if not alternatives:
        return None
    raw = alternatives[0].get("confidence")
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def _mean(values: Sequence[float], default: float = DEFAULT_CONFIDENCE) -> float:
    return sum(values) / len(values) if values else default


def parse_transcript_document(document: Mapping[str, Any]) -> tuple[str, list[dict[str, Any]], float, float]:
    """Extract ``(text, segments, average_confidence, duration_seconds)`` from a job result."""

    results = document.get("results") or {}
    transcripts = results.get("transcripts") or []
    text = " ".join(
        str(entry.get("transcript") or "").strip() for entry in transcripts
    ).strip()

    items = [item for item in results.get("items") or [] if item.get("type") == "pronunciation"]
    by_id = {item.get("id"): item for item in items if item.get("id") is not None}
    confidences = [c for c in (_item_confidence(item) for item in items) if c is not None]
    end_times = [float(item["end_time"]) for item in items if item.get("end_time") is not None]
    duration = max(end_times) if end_times else 0.0

    segments: list[dict[str, Any]] = []
    for segment in results.get("audio_segments") or []:
        segment_items = [by_id[i] for i in segment.get("items") or [] if i in by_id]
        segment_conf = [c for c in (_item_confidence(i) for i in segment_items) if c is not None]
        segments.append(
            {
                "speaker": _speaker_name(segment.get("speaker_label")),
                "startTime": format_timestamp(float(segment.get("start_time") or 0)),
                "endTime": format_timestamp(float(segment.get("end_time") or 0)),
                "text": str(segment.get("transcript") or ""),
                "confidence": round(_mean(segment_conf), 2),
                "words": [
                    {
                        "word": (item.get("alternatives") or [{}])[0].get("content", ""),
                        "startTime": float(item.get("start_time") or 0),
                        "endTime": float(item.get("end_time") or 0),
                    }
                    for item in segment_items
                ],
            }
        )

    if not segments and text:
        segments.append(
            {
                "speaker": "Speaker 1",
                "startTime": format_timestamp(0),
                "endTime": format_timestamp(duration),
                "text": text,
                "confidence": round(_mean(confidences), 2),
                "words": [],
            }
        )

    return text, segments, _mean(confidences), duration


class TranscribeService:
    """High-level facade for running Amazon Transcribe batch jobs."""

    def __init__(
        self,
        *,
        region: str,
        input_bucket: str,
        input_prefix: str = "transcribe-input",
        language_code: str = "en-US",
        poll_interval_seconds: float = 5.0,
        poll_max_attempts: int = 60,
        max_speaker_labels: int = 10,
        transcribe_client: Any | None = None,
        s3_client: Any | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._region = region
        self._input_bucket = input_bucket
        self._input_prefix = input_prefix.strip("/")
        self._language_code = language_code
        self._poll_interval = poll_interval_seconds
        self._max_attempts = poll_max_attempts
        self._max_speaker_labels = max_speaker_labels
        self._transcribe = transcribe_client or create_boto3_client("transcribe", region_name=region)
        self._s3 = s3_client or create_boto3_client("s3", region_name=region)
        self._http_client_factory = http_client_factory or (
            lambda: httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        )
        self._sleep = sleep

    @classmethod
    def from_settings(cls) -> "TranscribeService":
        cfg = settings.transcribe
        return cls(
            region=cfg.region,
            input_bucket=cfg.input_bucket or settings.s3.bucket_name,
            input_prefix=cfg.input_prefix,
            language_code=cfg.default_language_code,
            poll_interval_seconds=cfg.poll_interval_seconds,
            poll_max_attempts=cfg.poll_max_attempts,
            max_speaker_labels=cfg.max_speaker_labels,
        )

    async def transcribe(
        self,
        audio_bytes: bytes,
        *,
        audio_format: str,
        content_type: str = "audio/mpeg",
        language_code: str | None = None,
        enable_speaker_diarization: bool = False,
        request_id: str | None = None,
    ) -> TranscriptionResult:
        """Upload audio, run a transcription job, and return the parsed transcript."""

        if not audio_bytes:
            raise TranscriptionServiceError("No audio data provided", reason="upload")
        if not self._input_bucket:
            raise ProviderConfigurationError(
                "Transcribe input bucket is not configured. Set TRANSCRIBE_INPUT_BUCKET."
            )

        request_id = request_id or uuid4().hex
        job_name = f"autobrief-{request_id}"
        extension = audio_format.lower().lstrip(".") or "mp3"
        object_key = f"{self._input_prefix}/{job_name}.{extension}"

        logger.info("[%s] Uploading %s bytes to s3://%s/%s", request_id, len(audio_bytes), self._input_bucket, object_key)
        try:
            await run_in_threadpool(
                self._s3.put_object,
                Bucket=self._input_bucket,
                Key=object_key,
                Body=audio_bytes,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            raise TranscriptionServiceError(
                f"Failed to upload audio for transcription: {exc}",
                reason=_reason_for(exc, "upload"),
            ) from exc

        try:
            await self._start_job(
                job_name,
                f"s3://{self._input_bucket}/{object_key}",
                _MEDIA_FORMATS.get(extension, "mp3"),
                language_code,
                enable_speaker_diarization,
                request_id,
            )
            job, attempts = await self._wait_for_job(job_name, request_id)
            document = await self._fetch_transcript(job, request_id)
        finally:
            await self._cleanup(job_name, object_key, request_id)

        text, segments, confidence, duration = parse_transcript_document(document)
        if not text:
            raise TranscriptionServiceError(
                "No speech detected in audio. Please ensure your audio contains clear speech.",
                reason="no_speech",
            )

        speakers = {segment["speaker"] for segment in segments}
        result = TranscriptionResult(
            full_text=text,
            segments=segments,
            word_count=len(text.split()),
            speaker_count=len(speakers) or 1,
            average_confidence=round(confidence, 2),
            duration=format_timestamp(duration),
            language_detected=job.get("LanguageCode") or language_code or self._language_code,
            job_name=job_name,
            attempts=attempts,
        )
        logger.info(
            "[%s] Transcription complete words=%s confidence=%.2f",
            request_id,
            result.word_count,
            result.average_confidence,
        )
        return result

    async def _start_job(
        self,
        job_name: str,
        media_uri: str,
        media_format: str,
        language_code: str | None,
        diarization: bool,
        request_id: str,
    ) -> None:
        params: dict[str, Any] = {
            "TranscriptionJobName": job_name,
            "Media": {"MediaFileUri": media_uri},
            "MediaFormat": media_format,
        }
        if language_code:
            params["LanguageCode"] = language_code
        else:
            params["IdentifyLanguage"] = True
        if diarization:
            params["Settings"] = {
                "ShowSpeakerLabels": True,
                "MaxSpeakerLabels": self._max_speaker_labels,
            }

        logger.info("[%s] Starting transcription job %s", request_id, job_name)
        try:
            await run_in_threadpool(self._transcribe.start_transcription_job, **params)
        except (BotoCoreError, ClientError) as exc:
            raise TranscriptionServiceError(
                f"Failed to start transcription: {exc}",
                reason=_reason_for(exc, "provider"),
            ) from exc

    async def _wait_for_job(self, job_name: str, request_id: str) -> tuple[dict[str, Any], int]:
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await run_in_threadpool(
                    self._transcribe.get_transcription_job,
                    TranscriptionJobName=job_name,
                )
            except (BotoCoreError, ClientError) as exc:
                raise TranscriptionServiceError(
                    f"Failed to poll transcription: {exc}",
                    reason=_reason_for(exc, "provider"),
                ) from exc

            job = response.get("TranscriptionJob") or {}
            status = job.get("TranscriptionJobStatus")
            logger.info("[%s] Polling attempt %s/%s status=%s", request_id, attempt, self._max_attempts, status)
            if status == "COMPLETED":
                return job, attempt
            if status == "FAILED":
                raise TranscriptionServiceError(
                    f"Transcription failed: {job.get('FailureReason') or 'Unknown error'}"
                )
            await self._sleep(self._poll_interval)

        raise TranscriptionServiceError(
            f"Transcription timed out after {self._max_attempts} attempts "
            f"({int(self._max_attempts * self._poll_interval)} seconds)",
            reason="timeout",
        )

    async def _fetch_transcript(self, job: Mapping[str, Any], request_id: str) -> dict[str, Any]:
        uri = (job.get("Transcript") or {}).get("TranscriptFileUri")
        if not uri:
            raise TranscriptionServiceError("Transcription job returned no transcript file.")
        try:
            async with self._http_client_factory() as client:
                response = await client.get(uri)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("[%s] Failed to download transcript: %s", request_id, exc)
            raise TranscriptionServiceError(f"Failed to download transcript: {exc}") from exc

    async def _cleanup(self, job_name: str, object_key: str, request_id: str) -> None:
        try:
            await run_in_threadpool(
                self._transcribe.delete_transcription_job,
                TranscriptionJobName=job_name,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("[%s] Could not delete transcription job %s: %s", request_id, job_name, exc)
        try:
            await run_in_threadpool(
                self._s3.delete_object,
                Bucket=self._input_bucket,
                Key=object_key,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning("[%s] Could not delete input object %s: %s", request_id, object_key, exc)


def _reason_for(exc: Exception, default: str) -> str:
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        if code in _AUTH_ERROR_CODES:
            return "auth"
    return default


_DEFAULT_SERVICE: TranscribeService | None = None


def get_transcribe_service() -> TranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""

    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        _DEFAULT_SERVICE = TranscribeService.from_settings()
    return _DEFAULT_SERVICE


__all__ = [
    "TranscribeService",
    "TranscriptionResult",
    "TranscriptionServiceError",
    "compute_quality_score",
    "decode_audio_data",
    "error_suggestions",
    "format_timestamp",
    "get_transcribe_service",
    "parse_transcript_document",
    "transcription_warnings",
]
