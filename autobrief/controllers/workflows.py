"""Audio-to-brief workflow endpoints.

For a stage-by-stage map see `autobrief.pipelines.brief.flow.BriefWorkflowPipeline`.
POST `/workflows` validates the upload, checks the monthly quota, and runs
the six stages in the background:

1. Upload: probe duration and enforce the length ceiling.
2. Transcribe: call `/functions/transcribe-audio-enhanced`.
3. Analyze: word and character counts.
4. Generate: call `/functions/generate-brief` with the chosen template.
5. Store: copy the raw audio to S3 (failure is recorded, not fatal).
6. Save: transcript, brief, and usage increment in one transaction.

Clients poll GET `/workflows/{id}` for step state and retry failed steps
with POST `/workflows/{id}/retry`.
"""

import logging
from typing import Any, Mapping, Optional
from uuid import UUID

from fastapi import (
    APIRouter,
    BackgroundTasks,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
    status,
)

from autobrief.controllers.dependencies import AuthenticatedUser, CurrentUserDep, SessionDep
from autobrief.pipelines.brief import (
    AudioValidationError,
    BriefGeneratorClient,
    BriefWorkflow,
    BriefWorkflowPipeline,
    QuotaExceededError,
    TranscriptionClient,
    WorkflowStateError,
    check_quota,
    describe_error,
    functions_client_factory,
    read_audio_bytes,
    store_audio,
    validate_audio,
)
from autobrief.pipelines.brief.generation import DEFAULT_TEMPLATE
from autobrief.services import template_catalog
from autobrief.services.brief_repository import get_brief_repository
from autobrief.services.workflow_registry import (
    get_workflow,
    register_workflow,
    remove_workflow,
)
from autobrief.views.workflows import (
    ErrorHistoryItem,
    WorkflowAudio,
    WorkflowErrorInfo,
    WorkflowMetrics,
    WorkflowState,
    WorkflowStats,
    WorkflowStep,
)

router = APIRouter(prefix="/workflows", tags=["workflows"])

logger = logging.getLogger(__name__)

PIPELINE_STAGES = tuple(BriefWorkflowPipeline.describe())

_AUDIO_FILE_UPLOAD = File(...)
_TEMPLATE_FORM = Form(DEFAULT_TEMPLATE)


def build_workflow(
    user: AuthenticatedUser,
    template_id: str,
    options: Optional[Mapping[str, Any]] = None,
) -> BriefWorkflow:
    """Wire a workflow to the HTTP clients acting on behalf of ``user``."""

    client_factory = functions_client_factory(user.authorization)
    return BriefWorkflow(
        user_id=user.id,
        transcriber=TranscriptionClient(client_factory),
        generator=BriefGeneratorClient(client_factory),
        repository=get_brief_repository(),
        uploader=store_audio,
        template_id=template_id,
        options=options,
    )


def _state(workflow: BriefWorkflow) -> WorkflowState:
    """Project the orchestrator state onto the response schema."""

    error_info = None
    if workflow.error is not None:
        info = describe_error(workflow.error)
        error_info = WorkflowErrorInfo(
            title=info.title,
            message=info.message,
            suggestions=info.suggestions,
            can_retry=info.can_retry,
            help_url=info.help_url,
        )

    audio = None
    if workflow.asset is not None:
        asset = workflow.asset
        audio = WorkflowAudio(
            name=asset.name,
            size=asset.size,
            media_type=asset.media_type,
            audio_format=asset.audio_format,
            duration=asset.duration,
            playback_url=f"/workflows/{workflow.id}/audio" if asset.playback_url else None,
        )

    stats = workflow.stats()
    return WorkflowState(
        id=workflow.id,
        template_id=workflow.template_id,
        steps=[
            WorkflowStep(
                id=step.id,
                title=step.title,
                description=step.description,
                status=step.status.value,
                progress=step.progress,
                duration=step.duration,
                result=step.result,
                retry_count=step.retry_count,
            )
            for step in workflow.steps
        ],
        current_step=workflow.current_step,
        progress=workflow.progress,
        is_active=workflow.is_active,
        is_complete=workflow.is_complete,
        has_errors=workflow.has_errors,
        elapsed_time=workflow.elapsed_time,
        metrics=WorkflowMetrics(
            processing_speed=workflow.metrics.processing_speed,
            quality_score=workflow.metrics.quality_score,
            confidence_level=workflow.metrics.confidence_level,
            estimated_time_remaining=workflow.metrics.estimated_time_remaining,
        ),
        stats=WorkflowStats(
            completed_steps=stats.completed_steps,
            error_steps=stats.error_steps,
            total_steps=stats.total_steps,
            total_duration=stats.total_duration,
            avg_step_duration=stats.avg_step_duration,
            success_rate=stats.success_rate,
            total_retries=stats.total_retries,
        ),
        error_history=[
            ErrorHistoryItem(
                step_index=entry.step_index,
                error=entry.error,
                timestamp=entry.timestamp,
                retry_attempt=entry.retry_attempt,
            )
            for entry in workflow.error_history
        ],
        error=error_info,
        audio=audio,
        transcript=workflow.transcript,
        brief=workflow.brief,
        summary=workflow.generated.summary if workflow.generated else None,
        file_url=workflow.file_url,
        transcript_id=workflow.saved.transcript_id if workflow.saved else None,
        brief_id=workflow.saved.brief_id if workflow.saved else None,
    )


def _require_workflow(workflow_id: UUID, user: AuthenticatedUser) -> BriefWorkflow:
    workflow = get_workflow(workflow_id, user.id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workflow not found",
        )
    return workflow


@router.post(
    "",
    response_model=WorkflowState,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_workflow(
    background_tasks: BackgroundTasks,
    current_user: CurrentUserDep,
    session: SessionDep,
    audio_file: UploadFile = _AUDIO_FILE_UPLOAD,
    template_id: str = _TEMPLATE_FORM,
) -> WorkflowState:
    """Validate the upload and start processing it in the background."""

    template = await template_catalog.get_template(session, current_user.id, template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown template '{template_id}'",
        )

    audio_bytes = await read_audio_bytes(audio_file)
    try:
        asset = validate_audio(audio_file.filename, audio_file.content_type, audio_bytes)
    except AudioValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    options: dict[str, Any] = {}
    if not template.builtin:
        options["customInstructions"] = template.prompt_instructions

    workflow = build_workflow(current_user, template.id, options)
    try:
        await check_quota(workflow.repository, current_user.id)
    except QuotaExceededError as exc:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=str(exc),
        ) from exc

    workflow.bind_asset(asset)
    register_workflow(workflow)
    background_tasks.add_task(workflow.run_in_background)
    logger.info(
        "Workflow %s queued user=%s template=%s file=%s size=%s",
        workflow.id,
        current_user.id,
        template.id,
        asset.name,
        asset.size,
    )
    return _state(workflow)


@router.get("/{workflow_id}", response_model=WorkflowState)
async def get_workflow_state(
    workflow_id: UUID,
    current_user: CurrentUserDep,
) -> WorkflowState:
    workflow = _require_workflow(workflow_id, current_user)
    workflow.refresh_metrics()
    return _state(workflow)


@router.post(
    "/{workflow_id}/retry",
    response_model=WorkflowState,
    status_code=status.HTTP_202_ACCEPTED,
)
async def retry_workflow(
    workflow_id: UUID,
    background_tasks: BackgroundTasks,
    current_user: CurrentUserDep,
) -> WorkflowState:
    """Reset the first failed step and resume the run from it."""

    workflow = _require_workflow(workflow_id, current_user)
    step_index = workflow.first_failed_step()
    if step_index is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="There is no failed step to retry",
        )
    try:
        await workflow.ensure_quota()
    except QuotaExceededError as exc:
        raise HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=str(exc),
        ) from exc
    try:
        workflow.retry(step_index)
    except WorkflowStateError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc

    background_tasks.add_task(
        workflow.run_in_background,
        resume_from=step_index,
        delay=workflow.retry_delay,
    )
    return _state(workflow)


@router.post("/{workflow_id}/cancel", response_model=WorkflowState)
async def cancel_workflow(
    workflow_id: UUID,
    current_user: CurrentUserDep,
) -> WorkflowState:
    workflow = _require_workflow(workflow_id, current_user)
    if not workflow.cancel():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The workflow is not running",
        )
    return _state(workflow)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: UUID,
    current_user: CurrentUserDep,
) -> Response:
    """Cancel the run, release its audio, and forget it."""

    workflow = remove_workflow(workflow_id, current_user.id)
    if workflow is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Workflow not found",
        )
    workflow.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{workflow_id}/audio")
async def get_workflow_audio(
    workflow_id: UUID,
    current_user: CurrentUserDep,
) -> Response:
    """Stream back the bound audio for in-browser playback."""

    workflow = _require_workflow(workflow_id, current_user)
    entry = workflow.audio_payload()
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No audio is bound to this workflow",
        )
    data, media_type = entry
    return Response(content=data, media_type=media_type)
