"""Duration and container facts for uploaded audio.

WAV headers are read with the stdlib ``wave`` module; everything else goes
through ``ffprobe``. When neither works the duration is estimated from the
byte size at 128 kbps so the workflow can still proceed.
"""

from __future__ import annotations

import io
import json
import logging
import os
import subprocess
import tempfile
import wave

from fastapi.concurrency import run_in_threadpool

from autobrief.config.settings import settings

from .ingestion import EXTENSION_MIME_TYPES
from .types import AudioAsset, AudioMetadata

logger = logging.getLogger("autobrief.pipeline")

_FALLBACK_BITRATE_KBPS = 128
_DEFAULT_SAMPLE_RATE = 44100
_DEFAULT_CHANNELS = 2


class MetadataProbeError(RuntimeError):
    """Raised when the container could not be decoded."""


def estimate_duration(size_bytes: int, bitrate_kbps: int = _FALLBACK_BITRATE_KBPS) -> float:
    """Rough duration guess in seconds from byte size and bitrate."""

    return (size_bytes * 8) / (bitrate_kbps * 1000)


def estimate_bitrate(size_bytes: int, duration: float) -> int:
    if duration <= 0:
        return 0
    return round(size_bytes * 8 / duration / 1000)


def _probe_wav(data: bytes) -> float:
    try:
        with wave.open(io.BytesIO(data), "rb") as reader:
            frames = reader.getnframes()
            rate = reader.getframerate()
    except (wave.Error, EOFError) as exc:
        raise MetadataProbeError(f"Invalid WAV header: {exc}") from exc
    if rate <= 0:
        raise MetadataProbeError("WAV header reports a zero sample rate")
    return frames / float(rate)


def _probe_ffprobe(data: bytes, suffix: str, timeout: float) -> float:
    """Run ffprobe against a temporary copy of the payload and return the duration."""

    with tempfile.NamedTemporaryFile(delete=False, suffix=f".{suffix}") as tmp_file:
        tmp_file.write(data)
        tmp_path = tmp_file.name

    try:
        process = subprocess.run(
            [
                "ffprobe",
                "-v", "error",
                "-show_entries", "format=duration",
                "-of", "json",
                tmp_path,
            ],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            check=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise MetadataProbeError("ffprobe is not installed") from exc
    except subprocess.TimeoutExpired as exc:
        raise MetadataProbeError(f"ffprobe timed out after {timeout:g}s") from exc
    except subprocess.CalledProcessError as exc:
        error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
        raise MetadataProbeError(f"ffprobe failed: {error_msg}") from exc
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)

    try:
        payload = json.loads(process.stdout or b"{}")
        return float(payload["format"]["duration"])
    except (ValueError, KeyError, TypeError) as exc:
        raise MetadataProbeError("ffprobe returned no duration") from exc


def _probe_duration(asset: AudioAsset, timeout: float) -> float:
    if asset.audio_format == "wav":
        return _probe_wav(asset.data)
    return _probe_ffprobe(asset.data, asset.audio_format, timeout)


async def extract_metadata(asset: AudioAsset) -> AudioMetadata:
    """Decode the duration of ``asset``, falling back to estimates on failure."""

    timeout = settings.workflow.metadata_timeout_seconds
    mime_type = EXTENSION_MIME_TYPES.get(asset.audio_format, asset.media_type)
    estimated = False
    try:
        duration = await run_in_threadpool(_probe_duration, asset, timeout)
    except MetadataProbeError as exc:
        logger.info("Metadata probe failed for %s, estimating: %s", asset.name, exc)
        duration = estimate_duration(asset.size)
        estimated = True

    if duration <= 0:
        duration = estimate_duration(asset.size)
        estimated = True

    return AudioMetadata(
        duration=duration,
        bitrate_kbps=estimate_bitrate(asset.size, duration),
        sample_rate=_DEFAULT_SAMPLE_RATE,
        channels=_DEFAULT_CHANNELS,
        mime_type=mime_type,
        estimated=estimated,
    )


__all__ = [
    "MetadataProbeError",
    "estimate_duration",
    "estimate_bitrate",
    "extract_metadata",
]
