"""Audio validation and metadata fallbacks."""

from __future__ import annotations

import asyncio
import io
import wave

import pytest

from conftest import make_asset

from autobrief.config.settings import settings
from autobrief.pipelines.brief import metadata as metadata_module
from autobrief.pipelines.brief.errors import AudioValidationError, ErrorKind
from autobrief.pipelines.brief.ingestion import (
    infer_audio_format,
    resolve_content_type,
    validate_audio,
    validate_duration,
)
from autobrief.pipelines.brief.metadata import (
    MetadataProbeError,
    estimate_duration,
    extract_metadata,
)
from autobrief.pipelines.brief.types import AudioAsset


def _wav_bytes(seconds: float, rate: int = 8000) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(1)
        writer.setsampwidth(2)
        writer.setframerate(rate)
        writer.writeframes(b"\x00\x00" * int(seconds * rate))
    return buffer.getvalue()


def test_validate_audio_accepts_supported_file() -> None:
    asset = validate_audio("Team Sync.M4A", "audio/x-m4a", b"\x00" * 2048)

    assert asset.audio_format == "m4a"
    assert asset.media_type == "audio/x-m4a"
    assert asset.size == 2048
    assert asset.playback_url is None


def test_validate_audio_rejects_oversized_file() -> None:
    too_big = b"\x00" * (settings.workflow.max_file_size_bytes + 1)

    with pytest.raises(AudioValidationError, match="File size must be less than 25MB") as excinfo:
        validate_audio("long.mp3", "audio/mpeg", too_big)
    assert excinfo.value.kind is ErrorKind.VALIDATION


def test_validate_audio_rejects_unsupported_format() -> None:
    with pytest.raises(AudioValidationError, match="Unsupported file format"):
        validate_audio("notes.txt", "text/plain", b"hello")


def test_validate_audio_rejects_empty_payload() -> None:
    with pytest.raises(AudioValidationError):
        validate_audio("empty.mp3", "audio/mpeg", b"")


def test_content_type_guessed_from_extension() -> None:
    assert resolve_content_type("memo.flac", None) == "audio/flac"
    assert resolve_content_type("memo.wav", "application/octet-stream") == "audio/wav"
    assert resolve_content_type("memo.mp3", "audio/mpeg; charset=binary") == "audio/mpeg"


@pytest.mark.parametrize(
    ("media_type", "expected"),
    [
        ("audio/wav", "wav"),
        ("audio/mp4", "m4a"),
        ("audio/x-m4a", "m4a"),
        ("audio/webm", "webm"),
        ("audio/ogg", "ogg"),
        ("audio/flac", "mp3"),
        (None, "mp3"),
    ],
)
def test_infer_audio_format(media_type, expected) -> None:
    assert infer_audio_format(media_type) == expected


def test_validate_duration_ceiling() -> None:
    validate_duration(3 * 60 * 60)
    with pytest.raises(AudioValidationError, match="3 hours"):
        validate_duration(3 * 60 * 60 + 1)


def test_extract_metadata_reads_wav_header() -> None:
    data = _wav_bytes(2.0)
    asset = AudioAsset(data=data, name="clip.wav", size=len(data), media_type="audio/wav", audio_format="wav")

    metadata = asyncio.run(extract_metadata(asset))

    assert metadata.duration == pytest.approx(2.0)
    assert not metadata.estimated
    assert metadata.mime_type == "audio/wav"


def test_extract_metadata_falls_back_to_estimate(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_probe(data, suffix, timeout):
        raise MetadataProbeError("ffprobe is not installed")

    monkeypatch.setattr(metadata_module, "_probe_ffprobe", broken_probe)
    asset = make_asset(size=160_000)

    metadata = asyncio.run(extract_metadata(asset))

    assert metadata.estimated
    assert metadata.duration == pytest.approx(estimate_duration(160_000))
    assert metadata.duration == pytest.approx(10.0)
    assert metadata.bitrate_kbps == 128
