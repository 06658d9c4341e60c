"""Template catalog endpoints: built-in templates plus the caller's custom ones."""

from fastapi import APIRouter, HTTPException, Response, status

from autobrief.controllers.dependencies import CurrentUserDep, SessionDep
from autobrief.services import template_catalog
from autobrief.services.template_catalog import TemplateCatalogError, TemplateConfig
from autobrief.views.templates import (
    TemplateCreateRequest,
    TemplateResponse,
    TemplateUpdateRequest,
)

router = APIRouter(prefix="/templates", tags=["templates"])


def _response(template: TemplateConfig) -> TemplateResponse:
    return TemplateResponse(**template.as_dict())


def _not_found(template_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Template '{template_id}' not found",
    )


@router.get("", response_model=list[TemplateResponse])
async def list_templates(
    current_user: CurrentUserDep,
    session: SessionDep,
) -> list[TemplateResponse]:
    templates = await template_catalog.list_templates(session, current_user.id)
    return [_response(template) for template in templates]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: str,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> TemplateResponse:
    template = await template_catalog.get_template(session, current_user.id, template_id)
    if template is None:
        raise _not_found(template_id)
    return _response(template)


@router.post(
    "",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_template(
    payload: TemplateCreateRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> TemplateResponse:
    """Create a custom template with a ``custom_<timestamp>`` identifier."""

    template = await template_catalog.create_custom_template(
        session, current_user.id, payload.model_dump()
    )
    return _response(template)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    payload: TemplateUpdateRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> TemplateResponse:
    try:
        template = await template_catalog.update_custom_template(
            session,
            current_user.id,
            template_id,
            payload.model_dump(exclude_unset=True),
        )
    except TemplateCatalogError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    if template is None:
        raise _not_found(template_id)
    return _response(template)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    current_user: CurrentUserDep,
    session: SessionDep,
) -> Response:
    try:
        deleted = await template_catalog.delete_custom_template(
            session, current_user.id, template_id
        )
    except TemplateCatalogError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    if not deleted:
        raise _not_found(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
