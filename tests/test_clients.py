"""Transcription and brief clients against a mocked HTTP transport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import SAMPLE_BRIEF, SAMPLE_TRANSCRIPT, make_asset

from autobrief.pipelines.brief.endpoints import GENERATE_BRIEF_PATH, TRANSCRIBE_PATH
from autobrief.pipelines.brief.errors import (
    AudioValidationError,
    ErrorKind,
    GenerationError,
    TranscriptionError,
)
from autobrief.pipelines.brief.generation import BriefGeneratorClient
from autobrief.pipelines.brief.ingestion import validate_audio
from autobrief.pipelines.brief.transcription import TranscriptionClient


def factory_for(handler, seen: list | None = None):
    def _handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return handler(request)

    def _factory() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(_handler),
            base_url="http://functions.test",
            headers={"Authorization": "Bearer test-token"},
        )

    return _factory


def test_transcription_client_posts_data_url_and_reports_progress() -> None:
    seen: list[httpx.Request] = []
    progress: list[float] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "fullText": SAMPLE_TRANSCRIPT,
                "metadata": {"wordCount": 19, "averageConfidence": 0.92},
                "qualityScore": 92,
                "warnings": [],
            },
        )

    client = TranscriptionClient(factory_for(handler, seen))
    outcome = asyncio.run(client.transcribe(make_asset(size=64), on_progress=progress.append))

    assert outcome.text == SAMPLE_TRANSCRIPT
    assert outcome.word_count == 19
    assert outcome.average_confidence == 0.92
    assert progress == [20, 40, 50, 100]

    request = seen[0]
    assert request.url.path == TRANSCRIBE_PATH
    assert request.headers["authorization"] == "Bearer test-token"
    payload = json.loads(request.content)
    assert payload["audioData"].startswith("data:audio/mpeg;base64,")
    assert payload["audioFormat"] == "mp3"
    assert payload["options"]["enableSpeakerDiarization"] is False
    assert payload["options"]["enableAutomaticPunctuation"] is True
    assert payload["originalFilename"] == "standup.mp3"


def test_transcription_client_surfaces_endpoint_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "error": "timeout"})

    client = TranscriptionClient(factory_for(handler))

    with pytest.raises(TranscriptionError) as excinfo:
        asyncio.run(client.transcribe(make_asset(size=64)))

    assert "timeout" in str(excinfo.value)
    assert excinfo.value.kind is ErrorKind.NETWORK
    assert excinfo.value.retryable


def test_transcription_client_rejects_empty_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "fullText": "   "})

    client = TranscriptionClient(factory_for(handler))

    with pytest.raises(TranscriptionError) as excinfo:
        asyncio.run(client.transcribe(make_asset(size=64)))

    assert excinfo.value.kind is ErrorKind.CONTENT


def test_transcription_client_maps_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = TranscriptionClient(factory_for(handler))

    with pytest.raises(TranscriptionError) as excinfo:
        asyncio.run(client.transcribe(make_asset(size=64)))

    assert excinfo.value.kind is ErrorKind.NETWORK


def test_transcription_client_rejects_oversized_asset() -> None:
    seen: list[httpx.Request] = []
    client = TranscriptionClient(
        factory_for(lambda request: httpx.Response(200), seen),
        max_size_bytes=32,
    )

    with pytest.raises(AudioValidationError):
        asyncio.run(client.transcribe(make_asset(size=64)))
    assert seen == []


def test_generator_rejects_short_transcript_before_any_request() -> None:
    def factory() -> httpx.AsyncClient:
        raise AssertionError("the endpoint must not be called")

    client = BriefGeneratorClient(factory)

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(client.generate("too short"))

    assert excinfo.value.kind is ErrorKind.VALIDATION
    assert not excinfo.value.retryable


def test_generator_sends_template_options_and_parses_brief() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "brief": SAMPLE_BRIEF,
                "summary": "Ships Friday.",
                "templateType": "client_update",
                "qualityScore": 81,
                "metadata": {"requestId": "abc"},
            },
        )

    client = BriefGeneratorClient(factory_for(handler, seen))
    brief = asyncio.run(
        client.generate(
            SAMPLE_TRANSCRIPT,
            "client_update",
            {"customInstructions": "Focus on risks"},
        )
    )

    assert brief.brief == SAMPLE_BRIEF.strip()
    assert brief.summary == "Ships Friday."
    assert brief.quality_score == 81
    payload = json.loads(seen[0].content)
    assert seen[0].url.path == GENERATE_BRIEF_PATH
    assert payload["options"]["templateType"] == "client_update"
    assert payload["options"]["tone"] == "professional"
    assert payload["options"]["length"] == "detailed"
    assert payload["options"]["customInstructions"] == "Focus on risks"


def test_generator_rejects_too_short_brief() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"brief": "Too short."})

    client = BriefGeneratorClient(factory_for(handler))

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(client.generate(SAMPLE_TRANSCRIPT))

    assert "too short" in str(excinfo.value)
    assert excinfo.value.kind is ErrorKind.CONTENT


def test_generator_surfaces_failure_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"success": False, "error": "model overloaded"})

    client = BriefGeneratorClient(factory_for(handler))

    with pytest.raises(GenerationError, match="model overloaded"):
        asyncio.run(client.generate(SAMPLE_TRANSCRIPT))


@pytest.mark.parametrize(
    "filename, content_type, expected",
    [
        ("call.flac", "audio/flac", "flac"),
        ("call.aac", "audio/aac", "aac"),
        ("call.opus", "audio/opus", "opus"),
        ("call.webm", "audio/webm", "webm"),
    ],
)
def test_transcription_client_sends_validated_format(filename, content_type, expected) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "fullText": SAMPLE_TRANSCRIPT})

    asset = validate_audio(filename, content_type, b"\x00" * 2048)
    client = TranscriptionClient(factory_for(handler, seen))
    asyncio.run(client.transcribe(asset))

    payload = json.loads(seen[0].content)
    assert asset.audio_format == expected
    assert payload["audioFormat"] == expected
    assert payload["audioData"].startswith(f"data:{content_type};base64,")
