"""Shared fixtures: in-memory database, fake identity, and workflow fakes."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_LOG_DIR = tempfile.mkdtemp(prefix="autobrief-tests-")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("LOG_FILE", os.path.join(_LOG_DIR, "app.log"))
os.environ.setdefault("PIPELINE_LOG_FILE", os.path.join(_LOG_DIR, "pipeline.log"))
os.environ.setdefault("TRANSCRIPT_LOG_FILE", os.path.join(_LOG_DIR, "transcripts.log"))

from fastapi.testclient import TestClient  # noqa: E402

from autobrief.controllers.dependencies import AuthenticatedUser, get_current_user  # noqa: E402
from autobrief.main import app  # noqa: E402
from autobrief.pipelines.brief.errors import QuotaExceededError  # noqa: E402
from autobrief.pipelines.brief.playback import PlaybackUrlRegistry  # noqa: E402
from autobrief.pipelines.brief.types import (  # noqa: E402
    AudioAsset,
    AudioMetadata,
    GeneratedBrief,
    QuotaSnapshot,
    SavedRun,
    TranscriptionOutcome,
)
from autobrief.services.workflow_registry import clear_workflows  # noqa: E402

TEST_USER_ID = UUID("11111111-2222-3333-4444-555555555555")

SAMPLE_TRANSCRIPT = (
    "Good morning everyone. We agreed to ship the billing migration on Friday "
    "and Maria will own the rollback plan."
)
SAMPLE_BRIEF = (
    "# Meeting Summary\n\n## Decisions\n- Ship the billing migration on Friday\n\n"
    "## Action Items\n| Owner | Task |\n|---|---|\n| Maria | Rollback plan |\n"
)


@pytest.fixture(scope="session")
def client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def override_current_user() -> None:
    """Bypass bearer-token validation for the test client."""

    async def fake_get_current_user() -> AuthenticatedUser:
        return AuthenticatedUser(id=TEST_USER_ID, email="owner@example.com", token="test-token")

    app.dependency_overrides[get_current_user] = fake_get_current_user
    yield
    app.dependency_overrides.clear()
    clear_workflows()


class FakeTranscriber:
    def __init__(self, text: str = SAMPLE_TRANSCRIPT, error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls = 0

    async def transcribe(self, asset: AudioAsset, on_progress=None) -> TranscriptionOutcome:
        self.calls += 1
        if on_progress:
            on_progress(50)
        if self.error is not None:
            raise self.error
        return TranscriptionOutcome(
            text=self.text,
            word_count=len(self.text.split()),
            average_confidence=0.93,
            quality_score=93,
        )


class FakeGenerator:
    def __init__(self, brief: str = SAMPLE_BRIEF) -> None:
        self.brief = brief
        self.calls: list[dict[str, Any]] = []

    async def generate(self, transcript, template_type="meeting_summary", options=None, on_progress=None):
        self.calls.append(
            {"transcript": transcript, "template_type": template_type, "options": dict(options or {})}
        )
        return GeneratedBrief(
            brief=self.brief,
            summary="Billing migration ships Friday.",
            template_type=template_type,
            quality_score=88,
            metadata={"requestId": "req-1"},
        )


class FakeRepository:
    """In-memory stand-in for the brief repository."""

    def __init__(self, count: int = 0, limit: int = 10) -> None:
        self.count = count
        self.limit = limit
        self.saved: list[dict[str, Any]] = []
        self.attached: list[tuple[UUID, UUID, str]] = []

    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        return QuotaSnapshot(count=self.count, limit=self.limit)

    async def save_run(self, user_id: UUID, **kwargs: Any) -> SavedRun:
        if self.limit != -1 and self.count >= self.limit:
            raise QuotaExceededError(self.count, self.limit)
        self.count += 1
        self.saved.append({"user_id": user_id, **kwargs})
        return SavedRun(transcript_id=uuid4(), brief_id=uuid4())

    async def attach_file_url(self, user_id: UUID, transcript_id: UUID, file_url: str) -> bool:
        self.attached.append((user_id, transcript_id, file_url))
        return True


class FakeUploader:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def __call__(self, user_id: UUID, asset: AudioAsset) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return f"https://bucket.s3.us-east-1.amazonaws.com/audio-files/{user_id}/{asset.name}"


async def fake_metadata(asset: AudioAsset) -> AudioMetadata:
    return AudioMetadata(
        duration=12.0,
        bitrate_kbps=128,
        sample_rate=44100,
        channels=2,
        mime_type=asset.media_type,
    )


def make_asset(size: int = 50 * 1024, name: str = "standup.mp3") -> AudioAsset:
    return AudioAsset(
        data=b"\xff" * size,
        name=name,
        size=size,
        media_type="audio/mpeg",
        audio_format="mp3",
    )


@pytest.fixture
def playback() -> PlaybackUrlRegistry:
    return PlaybackUrlRegistry()
