"""Brief history endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from autobrief.controllers.dependencies import CurrentUserDep
from autobrief.models.brief import Brief
from autobrief.pipelines.brief.errors import PersistenceError
from autobrief.services.brief_repository import BriefRepository, get_brief_repository
from autobrief.views.briefs import BriefDetail, BriefSummary, BriefUpdateRequest

router = APIRouter(prefix="/briefs", tags=["briefs"])

RepositoryDep = Annotated[BriefRepository, Depends(get_brief_repository)]

PREVIEW_CHARS = 200


def _summary(brief: Brief) -> BriefSummary:
    return BriefSummary(
        id=brief.id,
        transcript_id=brief.transcript_id,
        template=brief.template,
        created_at=brief.created_at,
        updated_at=brief.updated_at,
        sent=bool(brief.sent),
        quality_score=brief.quality_score,
        preview=brief.content_md[:PREVIEW_CHARS],
    )


def _detail(brief: Brief) -> BriefDetail:
    transcript = brief.transcript
    return BriefDetail(
        id=brief.id,
        transcript_id=brief.transcript_id,
        template=brief.template,
        content_md=brief.content_md,
        created_at=brief.created_at,
        updated_at=brief.updated_at,
        sent=bool(brief.sent),
        quality_score=brief.quality_score,
        processing_time_ms=brief.processing_time_ms,
        metadata=dict(brief.metadata_ or {}),
        transcript_text=transcript.original_text if transcript else None,
        original_file_url=transcript.original_file_url if transcript else None,
    )


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Brief not found",
    )


@router.get("", response_model=list[BriefSummary])
async def list_briefs(
    current_user: CurrentUserDep,
    repository: RepositoryDep,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> list[BriefSummary]:
    """Return the caller's briefs, newest first."""

    briefs = await repository.list_briefs(current_user.id, limit=limit, offset=offset)
    return [_summary(brief) for brief in briefs]


@router.get("/{brief_id}", response_model=BriefDetail)
async def get_brief(
    brief_id: UUID,
    current_user: CurrentUserDep,
    repository: RepositoryDep,
) -> BriefDetail:
    brief = await repository.get_brief(current_user.id, brief_id)
    if brief is None:
        raise _not_found()
    return _detail(brief)


@router.put("/{brief_id}", response_model=BriefDetail)
async def update_brief(
    brief_id: UUID,
    payload: BriefUpdateRequest,
    current_user: CurrentUserDep,
    repository: RepositoryDep,
) -> BriefDetail:
    """Store an edited Markdown body verbatim."""

    try:
        brief = await repository.update_brief_content(
            current_user.id, brief_id, payload.content_md
        )
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    if brief is None:
        raise _not_found()
    return _detail(brief)


@router.delete("/{brief_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_brief(
    brief_id: UUID,
    current_user: CurrentUserDep,
    repository: RepositoryDep,
) -> Response:
    """Delete a brief; its transcript stays in the history store."""

    try:
        deleted = await repository.delete_brief(current_user.id, brief_id)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    if not deleted:
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
