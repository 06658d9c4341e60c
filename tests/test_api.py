"""HTTP-level tests for the workflow, function, brief, template, and usage routes."""

from __future__ import annotations

import base64
import time
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from conftest import (
    SAMPLE_BRIEF,
    SAMPLE_TRANSCRIPT,
    TEST_USER_ID,
    FakeGenerator,
    FakeRepository,
    FakeTranscriber,
    FakeUploader,
    fake_metadata,
)

from autobrief.controllers import workflows as workflows_controller
from autobrief.controllers.dependencies import get_current_user
from autobrief.main import app
from autobrief.pipelines.brief.errors import TranscriptionError
from autobrief.pipelines.brief.workflow import BriefWorkflow
from autobrief.services.brief_generation import BriefGenerationService, get_brief_generation_service
from autobrief.services.brief_repository import get_brief_repository
from autobrief.services.transcribe import (
    TranscriptionResult,
    TranscriptionServiceError,
    get_transcribe_service,
)
from autobrief.utils import create_access_token

AUDIO_BYTES = b"\xff\xfb" * 2048


@pytest.fixture
def fakes(monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """Route workflow construction through in-memory collaborators."""

    state = SimpleNamespace(
        transcriber=FakeTranscriber(),
        generator=FakeGenerator(),
        repository=FakeRepository(),
        uploader=FakeUploader(),
        built=[],
    )

    def fake_build_workflow(user, template_id, options=None):
        workflow = BriefWorkflow(
            user_id=user.id,
            transcriber=state.transcriber,
            generator=state.generator,
            repository=state.repository,
            uploader=state.uploader,
            template_id=template_id,
            options=options,
            metadata_extractor=fake_metadata,
            retry_delay=0,
            tick_seconds=0.01,
        )
        state.built.append(workflow)
        return workflow

    monkeypatch.setattr(workflows_controller, "build_workflow", fake_build_workflow)
    return state


def _upload(client, name: str = "standup.mp3", media_type: str = "audio/mpeg", template_id: str = "meeting_summary"):
    return client.post(
        "/workflows",
        files={"audio_file": (name, AUDIO_BYTES, media_type)},
        data={"template_id": template_id},
    )


def _wait_until_idle(client, workflow_id: str) -> dict:
    for _ in range(200):
        state = client.get(f"/workflows/{workflow_id}").json()
        if not state["is_active"] and any(step["status"] != "pending" for step in state["steps"]):
            return state
        time.sleep(0.01)
    raise AssertionError("workflow did not finish")


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics_endpoint_exposes_prometheus_text(client) -> None:
    client.get("/health")
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_workflow_runs_end_to_end(client, fakes) -> None:
    response = _upload(client)

    assert response.status_code == 202
    body = response.json()
    assert [step["id"] for step in body["steps"]] == [
        "upload",
        "transcribe",
        "analyze",
        "generate",
        "store",
        "save",
    ]
    assert body["audio"]["name"] == "standup.mp3"

    state = _wait_until_idle(client, body["id"])
    assert state["is_complete"]
    assert state["progress"] == 100
    assert state["transcript"] == SAMPLE_TRANSCRIPT
    assert state["brief"] == SAMPLE_BRIEF
    assert state["brief_id"] is not None
    assert state["stats"]["success_rate"] == 100
    assert fakes.repository.count == 1

    audio = client.get(f"/workflows/{body['id']}/audio")
    assert audio.status_code == 200
    assert audio.content == AUDIO_BYTES
    assert audio.headers["content-type"] == "audio/mpeg"


def test_workflow_rejects_unsupported_upload(client, fakes) -> None:
    response = _upload(client, name="notes.txt", media_type="text/plain")

    assert response.status_code == 422
    assert "Unsupported file format" in response.json()["detail"]
    assert fakes.built == []


def test_workflow_rejects_exhausted_quota(client, fakes) -> None:
    fakes.repository.count = 10
    fakes.repository.limit = 10

    response = _upload(client)

    assert response.status_code == 402
    assert "Monthly limit reached (10/10)" in response.json()["detail"]
    assert fakes.transcriber.calls == 0
    assert fakes.repository.count == 10


def test_workflow_unknown_template_is_404(client, fakes) -> None:
    response = _upload(client, template_id="does_not_exist")

    assert response.status_code == 404


def test_custom_template_instructions_reach_generator(client, fakes) -> None:
    created = client.post(
        "/templates",
        json={"name": "Risk Review", "prompt_instructions": "List every risk with an owner."},
    ).json()

    response = _upload(client, template_id=created["id"])
    _wait_until_idle(client, response.json()["id"])

    call = fakes.generator.calls[0]
    assert call["template_type"] == created["id"]
    assert call["options"]["customInstructions"] == "List every risk with an owner."
    client.delete(f"/templates/{created['id']}")


def test_failed_transcription_can_be_retried(client, fakes) -> None:
    fakes.transcriber.error = TranscriptionError("Transcription failed: timeout")

    workflow_id = _upload(client).json()["id"]
    failed = _wait_until_idle(client, workflow_id)

    assert failed["has_errors"]
    assert failed["steps"][1]["status"] == "error"
    assert failed["error"]["title"] == "Connection Error"
    assert failed["error"]["can_retry"] is True
    assert failed["error"]["help_url"].endswith("/connection-issues")
    assert failed["error_history"][0]["error"] == "Transcription failed: timeout"

    fakes.transcriber.error = None
    retried = client.post(f"/workflows/{workflow_id}/retry")
    assert retried.status_code == 202

    for _ in range(200):
        state = client.get(f"/workflows/{workflow_id}").json()
        if state["is_complete"]:
            break
        time.sleep(0.01)
    assert state["is_complete"]
    assert state["steps"][1]["retry_count"] == 1
    assert state["steps"][0]["retry_count"] == 0


def test_retry_without_failure_is_conflict(client, fakes) -> None:
    workflow_id = _upload(client).json()["id"]
    _wait_until_idle(client, workflow_id)

    response = client.post(f"/workflows/{workflow_id}/retry")

    assert response.status_code == 409


def test_delete_workflow_releases_it(client, fakes) -> None:
    workflow_id = _upload(client).json()["id"]
    _wait_until_idle(client, workflow_id)

    assert client.delete(f"/workflows/{workflow_id}").status_code == 204
    assert client.get(f"/workflows/{workflow_id}").status_code == 404
    assert client.get(f"/workflows/{workflow_id}/audio").status_code == 404
    assert fakes.built[0].asset is None


def test_workflow_of_another_user_is_hidden(client, fakes) -> None:
    workflow_id = _upload(client).json()["id"]
    _wait_until_idle(client, workflow_id)

    async def other_user():
        return SimpleNamespace(id=uuid4(), email=None, token="other", authorization="Bearer other")

    app.dependency_overrides[get_current_user] = other_user

    assert client.get(f"/workflows/{workflow_id}").status_code == 404


class FakeTranscribeService:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.kwargs: dict | None = None

    async def transcribe(self, audio_bytes, **kwargs):
        self.kwargs = {"audio_bytes": audio_bytes, **kwargs}
        if self.error is not None:
            raise self.error
        return TranscriptionResult(
            full_text=SAMPLE_TRANSCRIPT,
            segments=[
                {
                    "speaker": "Speaker 1",
                    "startTime": "00:00:00",
                    "endTime": "00:00:12",
                    "text": SAMPLE_TRANSCRIPT,
                    "confidence": 0.93,
                    "words": [],
                }
            ],
            word_count=len(SAMPLE_TRANSCRIPT.split()),
            speaker_count=1,
            average_confidence=0.93,
            duration="00:00:12",
            language_detected="en-US",
        )


def test_transcribe_endpoint_returns_contract(client) -> None:
    service = FakeTranscribeService()
    app.dependency_overrides[get_transcribe_service] = lambda: service
    encoded = base64.b64encode(AUDIO_BYTES).decode("ascii")

    response = client.post(
        "/functions/transcribe-audio-enhanced",
        json={
            "audioData": f"data:audio/wav;base64,{encoded}",
            "audioFormat": "wav",
            "options": {"enableSpeakerDiarization": True, "languageCode": "en-US"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["fullText"] == SAMPLE_TRANSCRIPT
    assert body["metadata"]["wordCount"] == len(SAMPLE_TRANSCRIPT.split())
    assert body["metadata"]["duration"] == "00:00:12"
    assert body["qualityScore"] == pytest.approx(0.93)
    assert body["warnings"] == []
    assert response.headers["access-control-allow-origin"] == "*"
    assert service.kwargs["audio_bytes"] == AUDIO_BYTES
    assert service.kwargs["content_type"] == "audio/wav"
    assert service.kwargs["enable_speaker_diarization"] is True


def test_transcribe_endpoint_failure_shape(client) -> None:
    service = FakeTranscribeService(
        error=TranscriptionServiceError("No speech detected in audio.", reason="no_speech")
    )
    app.dependency_overrides[get_transcribe_service] = lambda: service
    encoded = base64.b64encode(AUDIO_BYTES).decode("ascii")

    response = client.post(
        "/functions/transcribe-audio-enhanced",
        json={"audioData": encoded, "audioFormat": "mp3"},
    )

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "No speech detected in audio."
    assert body["requestId"]
    assert "Ensure audio contains clear human speech" in body["suggestions"]


def test_transcribe_endpoint_requires_audio(client) -> None:
    app.dependency_overrides[get_transcribe_service] = lambda: FakeTranscribeService()

    response = client.post("/functions/transcribe-audio-enhanced", json={"audioFormat": "mp3"})

    assert response.status_code == 500
    assert response.json()["error"] == "No audio data provided"


def test_function_preflight_is_open(client) -> None:
    response = client.options("/functions/generate-brief")

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


class FakeLlm:
    def __init__(self) -> None:
        self.responses = [SAMPLE_BRIEF, "Billing migration ships Friday with Maria owning rollback."]

    async def invoke(self, **kwargs) -> str:
        return self.responses.pop(0)


def test_generate_brief_endpoint_returns_contract(client) -> None:
    app.dependency_overrides[get_brief_generation_service] = lambda: BriefGenerationService(llm=FakeLlm())

    response = client.post(
        "/functions/generate-brief",
        json={"transcriptionText": SAMPLE_TRANSCRIPT, "options": {"templateType": "sales_call"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["brief"] == SAMPLE_BRIEF
    assert body["templateType"] == "sales_call"
    assert body["totalWordCount"] == body["briefWordCount"] + body["summaryWordCount"]
    assert body["metadata"]["templateStyle"] == "sales_call_enhanced_v2"


def test_generate_brief_endpoint_rejects_short_text(client) -> None:
    app.dependency_overrides[get_brief_generation_service] = lambda: BriefGenerationService(llm=FakeLlm())

    response = client.post("/functions/generate-brief", json={"transcriptionText": "too short"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Transcription text too short to generate meaningful brief"
    assert datetime.fromisoformat(body["timestamp"])


def _brief_row(**overrides):
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    values = {
        "id": uuid4(),
        "transcript_id": uuid4(),
        "template": "meeting_summary",
        "content_md": SAMPLE_BRIEF,
        "created_at": now,
        "updated_at": None,
        "sent": False,
        "quality_score": 88.0,
        "processing_time_ms": 1200,
        "metadata_": {"summary": "Ships Friday."},
        "transcript": SimpleNamespace(original_text=SAMPLE_TRANSCRIPT, original_file_url=None),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class StubBriefRepository:
    def __init__(self, rows) -> None:
        self.rows = {row.id: row for row in rows}

    async def list_briefs(self, user_id, *, limit=50, offset=0):
        return list(self.rows.values())[offset:offset + limit]

    async def get_brief(self, user_id, brief_id):
        return self.rows.get(brief_id)

    async def update_brief_content(self, user_id, brief_id, content):
        row = self.rows.get(brief_id)
        if row is not None:
            row.content_md = content
        return row

    async def delete_brief(self, user_id, brief_id):
        return self.rows.pop(brief_id, None) is not None


def test_brief_history_routes(client) -> None:
    row = _brief_row()
    repository = StubBriefRepository([row])
    app.dependency_overrides[get_brief_repository] = lambda: repository

    listed = client.get("/briefs").json()
    assert listed[0]["id"] == str(row.id)
    assert listed[0]["preview"] == SAMPLE_BRIEF[:200]

    detail = client.get(f"/briefs/{row.id}").json()
    assert detail["transcript_text"] == SAMPLE_TRANSCRIPT
    assert detail["metadata"]["summary"] == "Ships Friday."

    edited = client.put(f"/briefs/{row.id}", json={"content_md": "# Edited"}).json()
    assert edited["content_md"] == "# Edited"

    assert client.delete(f"/briefs/{row.id}").status_code == 204
    assert client.get(f"/briefs/{row.id}").status_code == 404
    assert client.delete(f"/briefs/{row.id}").status_code == 404


def test_template_routes(client) -> None:
    listed = client.get("/templates").json()
    assert [template["id"] for template in listed][:6] == [
        "meeting_summary",
        "client_update",
        "action_plan",
        "interview_notes",
        "training_session",
        "sales_call",
    ]

    created = client.post(
        "/templates",
        json={"name": "Standup", "prompt_instructions": "Yesterday, today, blockers."},
    )
    assert created.status_code == 201
    template_id = created.json()["id"]
    assert template_id.startswith("custom_")
    assert created.json()["builtin"] is False

    updated = client.put(f"/templates/{template_id}", json={"name": "Daily Standup"})
    assert updated.json()["name"] == "Daily Standup"

    assert client.put("/templates/meeting_summary", json={"name": "x"}).status_code == 409
    assert client.delete("/templates/meeting_summary").status_code == 409
    assert client.delete(f"/templates/{template_id}").status_code == 204
    assert client.get(f"/templates/{template_id}").status_code == 404


def test_usage_with_real_token(client) -> None:
    app.dependency_overrides.pop(get_current_user, None)
    token = create_access_token(str(TEST_USER_ID), email="owner@example.com")

    response = client.get("/profile/usage", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["briefs_limit"] == 10
    assert body["unlimited"] is False
    assert body["remaining"] == 10 - body["briefs_count"]


def test_missing_token_is_rejected(client) -> None:
    app.dependency_overrides.pop(get_current_user, None)

    assert client.get("/profile/usage").status_code == 401
    bad = client.get("/profile/usage", headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


def test_retry_with_exhausted_quota_is_payment_required(client, fakes) -> None:
    fakes.repository.count = 9
    fakes.transcriber.error = TranscriptionError("Transcription failed: timeout")
    workflow_id = _upload(client).json()["id"]
    _wait_until_idle(client, workflow_id)

    fakes.repository.count = 10
    response = client.post(f"/workflows/{workflow_id}/retry")

    assert response.status_code == 402
    state = client.get(f"/workflows/{workflow_id}").json()
    assert state["steps"][1]["status"] == "error"
    assert state["steps"][1]["retry_count"] == 0
    assert fakes.transcriber.calls == 1
