"""Stateful conductor for one audio-to-brief workflow run.

The orchestrator owns the six :class:`ProcessingStep` records and walks them
in order. Stages report failures by raising; the orchestrator records the
failure on the step, keeps every earlier result, and lets the caller resume
from the failed step with :meth:`BriefWorkflow.resume`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Protocol
from uuid import UUID, uuid4

from autobrief.config.settings import settings
from autobrief.telemetry import record_step_failure, record_workflow_outcome

from .errors import WorkflowError, WorkflowStateError
from .flow import (
    BriefWorkflowPipeline,
    STEP_ANALYZE,
    STEP_GENERATE,
    STEP_SAVE,
    STEP_STORE,
    STEP_TRANSCRIBE,
    STEP_UPLOAD,
)
from .generation import DEFAULT_TEMPLATE, ProgressCallback
from .ingestion import validate_duration
from .metadata import extract_metadata
from .playback import PlaybackUrlRegistry, playback_urls
from .quota import check_quota
from .types import (
    AudioAsset,
    AudioMetadata,
    ErrorHistoryEntry,
    GeneratedBrief,
    ProcessingStep,
    QuotaSnapshot,
    SavedRun,
    StepStatus,
    TranscriptionOutcome,
    WorkflowMetrics,
    WorkflowStats,
)

logger = logging.getLogger("autobrief.pipeline")
transcript_logger = logging.getLogger("autobrief.logs.transcript")


class Transcriber(Protocol):
    async def transcribe(
        self, asset: AudioAsset, on_progress: ProgressCallback | None = None
    ) -> TranscriptionOutcome:
        ...


class Generator(Protocol):
    async def generate(
        self,
        transcript: str,
        template_type: str = DEFAULT_TEMPLATE,
        options: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GeneratedBrief:
        ...


class RunRepository(Protocol):
    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        ...

    async def save_run(self, user_id: UUID, **kwargs: Any) -> SavedRun:
        ...

    async def attach_file_url(self, user_id: UUID, transcript_id: UUID, file_url: str) -> bool:
        ...


Uploader = Callable[[UUID, AudioAsset], Awaitable[str]]
MetadataExtractor = Callable[[AudioAsset], Awaitable[AudioMetadata]]


class BriefWorkflow:
    """Drive upload, transcribe, analyze, generate, store, and save for one asset."""

    def __init__(
        self,
        *,
        user_id: UUID,
        transcriber: Transcriber,
        generator: Generator,
        repository: RunRepository,
        uploader: Uploader,
        template_id: str = DEFAULT_TEMPLATE,
        options: Mapping[str, Any] | None = None,
        metadata_extractor: MetadataExtractor = extract_metadata,
        playback: PlaybackUrlRegistry = playback_urls,
        clock: Callable[[], float] = time.monotonic,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        tick_seconds: float | None = None,
        workflow_id: UUID | None = None,
    ) -> None:
        self.id = workflow_id or uuid4()
        self.user_id = user_id
        self.template_id = template_id or DEFAULT_TEMPLATE
        self.options = dict(options or {})
        self.max_retries = settings.workflow.max_retries if max_retries is None else max_retries
        self.retry_delay = (
            settings.workflow.retry_delay_seconds if retry_delay is None else retry_delay
        )
        self._tick_seconds = (
            settings.workflow.tick_seconds if tick_seconds is None else tick_seconds
        )

        self._transcriber = transcriber
        self._generator = generator
        self._repository = repository
        self._uploader = uploader
        self._extract_metadata = metadata_extractor
        self._playback = playback
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._stage_handlers: dict[int, Callable[[], Awaitable[str]]] = {
            STEP_UPLOAD: self._stage_upload,
            STEP_TRANSCRIBE: self._stage_transcribe,
            STEP_ANALYZE: self._stage_analyze,
            STEP_GENERATE: self._stage_generate,
            STEP_STORE: self._stage_store,
            STEP_SAVE: self._stage_save,
        }

        self.asset: AudioAsset | None = None
        self._clear_state()

    def _clear_state(self) -> None:
        self.steps: list[ProcessingStep] = BriefWorkflowPipeline.build_steps()
        self.current_step = 0
        self.progress = 0.0
        self.is_active = False
        self.start_time: float | None = None
        self.elapsed_time = 0.0
        self.audio_metadata: AudioMetadata | None = None
        self.transcription: TranscriptionOutcome | None = None
        self.transcript: str | None = None
        self.analysis: dict[str, int] = {}
        self.generated: GeneratedBrief | None = None
        self.file_url: str | None = None
        self.saved: SavedRun | None = None
        self.error: BaseException | None = None
        self.error_history: list[ErrorHistoryEntry] = []
        self.metrics = WorkflowMetrics()

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------
    @property
    def repository(self) -> RunRepository:
        return self._repository

    @property
    def brief(self) -> str | None:
        return self.generated.brief if self.generated else None

    @property
    def is_complete(self) -> bool:
        return all(step.status is StepStatus.COMPLETED for step in self.steps)

    @property
    def has_errors(self) -> bool:
        return any(step.status is StepStatus.ERROR for step in self.steps)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def estimated_time_remaining(self) -> float:
        return self.metrics.estimated_time_remaining

    def audio_payload(self) -> tuple[bytes, str] | None:
        """Return the bytes and media type behind the bound playback URL."""

        if self.asset is None or not self.asset.playback_url:
            return None
        return self._playback.resolve(self.asset.playback_url)

    def completed_steps(self) -> int:
        return sum(1 for step in self.steps if step.status is StepStatus.COMPLETED)

    def refresh_metrics(self) -> None:
        """Recompute elapsed time and the remaining-time estimate."""

        if self.is_active and self.start_time is not None:
            self.elapsed_time = max(0.0, self._clock() - self.start_time)

        completed = self.completed_steps()
        remaining = len(self.steps) - completed
        if self.is_active:
            self.metrics.estimated_time_remaining = (
                self.elapsed_time / max(completed, 1)
            ) * remaining
        elif remaining == 0:
            self.metrics.estimated_time_remaining = 0.0

        if self.transcript and self.elapsed_time > 0:
            self.metrics.processing_speed = len(self.transcript.split()) / self.elapsed_time

    def stats(self) -> WorkflowStats:
        total = len(self.steps)
        completed = self.completed_steps()
        errors = sum(1 for step in self.steps if step.status is StepStatus.ERROR)
        durations = [step.duration for step in self.steps if step.duration is not None]
        total_duration = sum(durations)
        return WorkflowStats(
            completed_steps=completed,
            error_steps=errors,
            total_steps=total,
            total_duration=total_duration,
            avg_step_duration=total_duration / len(durations) if durations else 0.0,
            success_rate=(completed / total) * 100 if total else 0.0,
            total_retries=sum(step.retry_count for step in self.steps),
        )

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    def bind_asset(self, asset: AudioAsset) -> None:
        """Attach ``asset``, revoking the playback URL of the asset it replaces."""

        if self.is_running:
            raise WorkflowStateError("Cannot replace the audio while the workflow is running.")
        if self.asset is not None:
            self._playback.revoke(self.asset.playback_url)
        asset.playback_url = self._playback.mint(asset.data, asset.media_type)
        self.asset = asset

    def start(self) -> None:
        if self.asset is None:
            raise WorkflowStateError("Bind an audio file before starting the workflow.")
        self.start_time = self._clock()
        self.elapsed_time = 0.0
        self.is_active = True
        self.error = None
        self.error_history = []
        logger.info("Workflow %s started user=%s asset=%s", self.id, self.user_id, self.asset.name)

    def advance(
        self,
        step_index: int,
        status: StepStatus | str,
        *,
        progress: float | None = None,
        result: str | None = None,
        error: str | None = None,
    ) -> bool:
        """Move one step to ``status``; returns False when nothing changed.

        Repeating a terminal status is a no-op, so duration and error history
        are recorded exactly once per real transition.
        """

        step = self.steps[step_index]
        status = StepStatus(status)
        if status.is_terminal and step.status is status:
            return False

        now = self._clock()
        if status is StepStatus.PROCESSING:
            if step.started_at is None:
                step.started_at = now
            self.current_step = step_index
        elif status.is_terminal:
            if step.started_at is None:
                step.started_at = now
            step.ended_at = now
            step.duration = now - step.started_at
            if status is StepStatus.ERROR:
                message = error or result or "Unknown error"
                self.error_history.append(
                    ErrorHistoryEntry(
                        step_index=step_index,
                        error=message,
                        timestamp=datetime.now(timezone.utc),
                        retry_attempt=step.retry_count,
                    )
                )
                step.result = message
                record_step_failure(step.id)
                self.current_step = step_index
            else:
                self.current_step = min(step_index + 1, len(self.steps) - 1)

        changed = step.status is not status
        step.status = status
        if progress is not None:
            step.progress = progress
        elif status is StepStatus.COMPLETED:
            step.progress = 100
        if result is not None and status is not StepStatus.ERROR:
            step.result = result

        self.progress = self.completed_steps() / len(self.steps) * 100
        self.refresh_metrics()
        if changed:
            logger.info(
                "Workflow %s step=%s status=%s", self.id, step.id, status.value
            )
        return True

    def retry(self, step_index: int) -> None:
        """Put ``step_index`` back to pending and rewind the current-step pointer."""

        if self.is_running:
            raise WorkflowStateError("The workflow is still running.")
        step = self.steps[step_index]
        if step.status is not StepStatus.ERROR:
            raise WorkflowStateError(f"'{step.title}' has not failed and cannot be retried.")
        if step.retry_count >= self.max_retries:
            raise WorkflowStateError(
                f"Maximum retry attempts ({self.max_retries}) reached for '{step.title}'."
            )

        step.status = StepStatus.PENDING
        step.retry_count += 1
        step.started_at = None
        step.ended_at = None
        step.duration = None
        step.progress = None
        step.result = None
        self.current_step = step_index
        self.progress = step_index / len(self.steps) * 100
        self.error = None
        logger.info(
            "Workflow %s retry step=%s attempt=%s", self.id, step.id, step.retry_count
        )

    @property
    def charges_pending(self) -> bool:
        """True until the save step, which consumes a brief, has completed."""
        return self.steps[STEP_SAVE].status is not StepStatus.COMPLETED

    async def ensure_quota(self) -> QuotaSnapshot | None:
        """Run the quota gate while a charging step is still ahead of the run."""

        if not self.charges_pending:
            return None
        try:
            return await check_quota(self._repository, self.user_id)
        except WorkflowError as exc:
            self.error = exc
            raise

    def first_failed_step(self) -> int | None:
        for index, step in enumerate(self.steps):
            if step.status is StepStatus.ERROR:
                return index
        return None

    async def resume(self, step_index: int | None = None) -> None:
        """Retry the failed step (or ``step_index``) and continue from there."""

        index = self.first_failed_step() if step_index is None else step_index
        if index is None:
            raise WorkflowStateError("There is no failed step to retry.")
        await self.ensure_quota()
        self.retry(index)
        await asyncio.sleep(self.retry_delay)
        await self.process_workflow(resume_from=index)

    def cancel(self) -> bool:
        """Cancel the in-flight run, if any."""

        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Workflow %s cancellation requested", self.id)
            return True
        return False

    def reset(self) -> None:
        """Abandon the run, release the playback URL, and return every step to pending."""

        self.cancel()
        if self.asset is not None:
            self._playback.revoke(self.asset.playback_url)
            self.asset.playback_url = None
        self.asset = None
        self._clear_state()
        logger.info("Workflow %s reset", self.id)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def launch(self, resume_from: int = 0, delay: float = 0.0) -> asyncio.Task:
        """Schedule the run as a task so it can be cancelled later."""

        if self.is_running:
            raise WorkflowStateError("The workflow is already running.")
        self._task = asyncio.ensure_future(self._delayed_run(resume_from, delay))
        return self._task

    async def run_in_background(self, resume_from: int = 0, delay: float = 0.0) -> None:
        """Run to completion, leaving failures recorded on the workflow state."""

        task = self.launch(resume_from, delay)
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            record_workflow_outcome("cancelled")
            logger.info("Workflow %s cancelled", self.id)
        except WorkflowError as exc:
            record_workflow_outcome(exc.kind.value)
            logger.info("Workflow %s stopped at step %s: %s", self.id, self.current_step, exc)
        except Exception:
            record_workflow_outcome("unexpected")
            logger.exception("Workflow %s failed unexpectedly", self.id)
        else:
            record_workflow_outcome("completed" if self.is_complete else "completed_with_errors")

    async def _delayed_run(self, resume_from: int, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self.process_workflow(resume_from=resume_from)

    async def process_workflow(self, resume_from: int = 0) -> SavedRun | None:
        """Run every not-yet-completed step from ``resume_from`` onwards."""

        if self.asset is None:
            raise WorkflowStateError("Bind an audio file before starting the workflow.")

        await self.ensure_quota()

        fresh = all(step.status is StepStatus.PENDING for step in self.steps)
        if fresh or self.start_time is None:
            self.start()
        else:
            self.is_active = True

        ticker = asyncio.ensure_future(self._tick())
        try:
            for index in range(resume_from, len(self.steps)):
                if self.steps[index].status is StepStatus.COMPLETED:
                    continue
                await self._run_stage(index)
        except asyncio.CancelledError:
            for index, step in enumerate(self.steps):
                if step.status is StepStatus.PROCESSING:
                    self.advance(index, StepStatus.ERROR, error="Workflow cancelled")
            raise
        finally:
            ticker.cancel()
            self.refresh_metrics()
            self.is_active = False

        if self.is_complete:
            self.metrics.estimated_time_remaining = 0.0
            logger.info(
                "Workflow %s complete in %.2fs brief=%s",
                self.id,
                self.elapsed_time,
                self.saved.brief_id if self.saved else None,
            )
        return self.saved

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._tick_seconds)
            self.refresh_metrics()

    async def _run_stage(self, index: int) -> None:
        stage = tuple(BriefWorkflowPipeline.describe())[index]
        self.advance(index, StepStatus.PROCESSING, progress=0)
        try:
            result = await self._stage_handlers[index]()
        except Exception as exc:
            self.error = exc
            self.advance(index, StepStatus.ERROR, error=str(exc) or exc.__class__.__name__)
            if stage.fatal:
                raise
            logger.warning("Workflow %s non-fatal failure at %s: %s", self.id, stage.id, exc)
            return
        self.advance(index, StepStatus.COMPLETED, result=result)

    def _progress_reporter(self, index: int) -> ProgressCallback:
        def _report(value: float) -> None:
            self.advance(index, StepStatus.PROCESSING, progress=value)

        return _report

    async def _stage_upload(self) -> str:
        asset = self._require_asset()
        metadata = await self._extract_metadata(asset)
        validate_duration(metadata.duration)
        asset.duration = metadata.duration
        self.audio_metadata = metadata
        return f"{asset.name} ({metadata.duration:.1f}s)"

    async def _stage_transcribe(self) -> str:
        asset = self._require_asset()
        outcome = await self._transcriber.transcribe(
            asset, on_progress=self._progress_reporter(STEP_TRANSCRIBE)
        )
        self.transcription = outcome
        self.transcript = outcome.text
        if outcome.average_confidence is not None:
            self.metrics.confidence_level = float(outcome.average_confidence)
        transcript_logger.info(
            "transcript | workflow=%s | user=%s | text=%s", self.id, self.user_id, outcome.text
        )
        return f"{len(outcome.text.split())} words transcribed"

    async def _stage_analyze(self) -> str:
        text = self.transcript or ""
        self.analysis = {"wordCount": len(text.split()), "charCount": len(text)}
        self.refresh_metrics()
        return f"{self.analysis['wordCount']} words, {self.analysis['charCount']} characters"

    async def _stage_generate(self) -> str:
        generated = await self._generator.generate(
            self.transcript or "",
            self.template_id,
            self.options,
            on_progress=self._progress_reporter(STEP_GENERATE),
        )
        self.generated = generated
        if generated.quality_score is not None:
            self.metrics.quality_score = float(generated.quality_score)
        transcript_logger.info(
            "brief | workflow=%s | template=%s | text=%s",
            self.id,
            self.template_id,
            generated.brief,
        )
        return f"{len(generated.brief.split())} word brief"

    async def _stage_store(self) -> str:
        self.file_url = await self._uploader(self.user_id, self._require_asset())
        if self.saved is not None:
            # Save ran while the upload was failing; backfill the transcript row.
            await self._repository.attach_file_url(
                self.user_id, self.saved.transcript_id, self.file_url
            )
        return "Audio file stored"

    async def _stage_save(self) -> str:
        if self.transcript is None or self.generated is None:
            raise WorkflowStateError("Transcript and brief must exist before saving.")
        self.saved = await self._repository.save_run(
            self.user_id,
            transcript=self.transcript,
            brief=self.generated.brief,
            template=self.template_id,
            file_url=self.file_url,
            transcript_metadata={
                "wordCount": self.analysis.get("wordCount", len(self.transcript.split())),
                "charCount": self.analysis.get("charCount", len(self.transcript)),
                "workflowId": str(self.id),
            },
            brief_metadata={
                "summary": self.generated.summary,
                "generation": dict(self.generated.metadata),
            },
            quality_score=self.generated.quality_score,
            processing_time_ms=int(self.elapsed_time * 1000),
        )
        return "Transcript and brief saved"

    def _require_asset(self) -> AudioAsset:
        if self.asset is None:
            raise WorkflowStateError("No audio file is bound to the workflow.")
        return self.asset


__all__ = [
    "BriefWorkflow",
    "Generator",
    "MetadataExtractor",
    "RunRepository",
    "Transcriber",
    "Uploader",
]
