"""Usage endpoint backing the monthly quota banner."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from autobrief.controllers.dependencies import CurrentUserDep
from autobrief.pipelines.brief.errors import PersistenceError
from autobrief.services.brief_repository import BriefRepository, get_brief_repository
from autobrief.views.profile import UsageResponse

router = APIRouter(prefix="/profile", tags=["profile"])

RepositoryDep = Annotated[BriefRepository, Depends(get_brief_repository)]


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    current_user: CurrentUserDep,
    repository: RepositoryDep,
) -> UsageResponse:
    """Return the caller's brief count and monthly limit."""

    try:
        quota = await repository.get_quota(current_user.id)
    except PersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc

    return UsageResponse(
        briefs_count=quota.count,
        briefs_limit=quota.limit,
        unlimited=quota.unlimited,
        remaining=None if quota.unlimited else max(quota.limit - quota.count, 0),
        exhausted=quota.exhausted,
    )
