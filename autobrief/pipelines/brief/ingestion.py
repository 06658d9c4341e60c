"""Audio intake: the single validation boundary for uploaded files."""

from __future__ import annotations

import mimetypes
from pathlib import PurePath
from typing import Final

from fastapi import UploadFile

from autobrief.config.settings import settings

from .errors import AudioValidationError
from .types import AudioAsset

EXTENSION_MIME_TYPES: Final[dict[str, str]] = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "opus": "audio/opus",
    "flac": "audio/flac",
    "webm": "audio/webm",
}

_MEDIA_TYPE_FORMATS: Final[dict[str, str]] = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/wave": "wav",
    "audio/mp4": "m4a",
    "audio/x-m4a": "m4a",
    "audio/m4a": "m4a",
    "audio/aac": "aac",
    "audio/ogg": "ogg",
    "audio/opus": "opus",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
    "audio/webm": "webm",
}


def file_extension(filename: str | None) -> str:
    """Return the lower-case extension without the dot (empty when absent)."""

    if not filename:
        return ""
    return PurePath(filename).suffix.lstrip(".").lower()


def infer_audio_format(media_type: str | None) -> str:
    """Map a media-type string onto the format tag sent to the transcription endpoint."""

    lowered = (media_type or "").lower()
    if "wav" in lowered:
        return "wav"
    if "m4a" in lowered or "mp4" in lowered:
        return "m4a"
    if "webm" in lowered:
        return "webm"
    if "ogg" in lowered:
        return "ogg"
    return "mp3"


def resolve_content_type(filename: str | None, content_type: str | None) -> str:
    """Pick a usable media type, guessing from the file name when the client sent none."""

    if content_type and content_type != "application/octet-stream":
        return content_type.split(";", 1)[0].strip().lower()

    extension = file_extension(filename)
    if extension in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[extension]

    if filename:
        guessed_type, _ = mimetypes.guess_type(filename)
        if guessed_type:
            return guessed_type
    return "audio/mpeg"


def _resolve_format(filename: str, media_type: str) -> str | None:
    supported = {fmt.lower() for fmt in settings.workflow.supported_formats}
    extension = file_extension(filename)
    if extension in supported:
        return extension
    candidate = _MEDIA_TYPE_FORMATS.get(media_type)
    if candidate in supported:
        return candidate
    return None


def validate_audio(
    filename: str | None,
    content_type: str | None,
    data: bytes,
) -> AudioAsset:
    """Check size and format, returning a normalised :class:`AudioAsset`."""

    name = (filename or "").strip() or "recording.mp3"
    if not data:
        raise AudioValidationError("The selected audio file is empty.")

    max_bytes = settings.workflow.max_file_size_bytes
    if len(data) > max_bytes:
        raise AudioValidationError(
            f"File size must be less than {max_bytes // (1024 * 1024)}MB"
        )

    media_type = resolve_content_type(name, content_type)
    audio_format = _resolve_format(name, media_type)
    if audio_format is None:
        formats = ", ".join(fmt.upper() for fmt in settings.workflow.supported_formats)
        raise AudioValidationError(f"Unsupported file format. Supported formats: {formats}")

    return AudioAsset(
        data=data,
        name=name,
        size=len(data),
        media_type=media_type,
        audio_format=audio_format,
    )


def validate_duration(duration: float | None) -> None:
    """Reject recordings longer than the configured ceiling."""

    limit = settings.workflow.max_duration_seconds
    if duration is not None and duration > limit:
        hours = limit / 3600
        raise AudioValidationError(
            f"Audio duration must be less than {hours:g} hours"
        )


async def read_audio_bytes(audio_file: UploadFile) -> bytes:
    """Load the upload into memory, reading at most one byte past the size ceiling."""

    audio_bytes = await audio_file.read(settings.workflow.max_file_size_bytes + 1)
    await audio_file.close()
    return audio_bytes


__all__ = [
    "EXTENSION_MIME_TYPES",
    "file_extension",
    "infer_audio_format",
    "resolve_content_type",
    "validate_audio",
    "validate_duration",
    "read_audio_bytes",
]
