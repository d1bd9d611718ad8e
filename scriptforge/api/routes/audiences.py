from __future__ import annotations

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.audiences import (
    DEFAULT_AUDIENCES,
    AudienceListResponse,
    AudienceResponse,
    AudienceView,
    CustomAudience,
    CustomAudienceCreate,
    is_default_audience_name,
)
from ...domain.users import User
from ...repositories.audiences import AudienceExistsError, AudiencesRepository
from ..dependencies import enforce_rate_limit, get_audiences_repository, get_current_user

logger = structlog.get_logger()

router = APIRouter(prefix="/audiences", tags=["audiences"])


def _custom_view(audience: CustomAudience) -> AudienceView:
    return AudienceView(
        id=str(audience.id),
        name=audience.name,
        description=audience.description,
        is_default=False,
        created_at=audience.created_at,
    )


@router.get("", response_model=AudienceListResponse)
async def list_audiences(
    current_user: User = Depends(get_current_user),
    audiences_repo: AudiencesRepository = Depends(get_audiences_repository),
) -> AudienceListResponse:
    defaults = [
        AudienceView(
            id=audience.id,
            name=audience.name,
            description=audience.description,
            is_default=True,
        )
        for audience in DEFAULT_AUDIENCES
    ]
    custom = [_custom_view(item) for item in await audiences_repo.list_for_user(current_user.id)]
    audiences = defaults + custom
    return AudienceListResponse(data=audiences, count=len(audiences))


@router.post("", response_model=AudienceResponse, status_code=status.HTTP_201_CREATED)
async def create_audience(
    payload: CustomAudienceCreate,
    current_user: User = Depends(get_current_user),
    audiences_repo: AudiencesRepository = Depends(get_audiences_repository),
    _: object = Depends(enforce_rate_limit("audiences:write")),
) -> AudienceResponse:
    if is_default_audience_name(payload.name):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This audience name conflicts with a default audience",
        )
    try:
        audience = await audiences_repo.create(current_user.id, payload)
    except AudienceExistsError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An audience with this name already exists",
        ) from exc
    logger.info("audiences.created", audience_id=str(audience.id), user_id=current_user.id)
    return AudienceResponse(data=_custom_view(audience))


@router.delete("/{audience_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_audience(
    audience_id: str,
    current_user: User = Depends(get_current_user),
    audiences_repo: AudiencesRepository = Depends(get_audiences_repository),
    _: object = Depends(enforce_rate_limit("audiences:write")),
) -> Response:
    if is_default_audience_name(audience_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Default audiences cannot be deleted",
        )
    try:
        parsed_id = UUID(audience_id)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Audience not found"
        ) from exc
    audience = await audiences_repo.get(parsed_id)
    if audience is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Audience not found")
    if audience.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own audiences",
        )
    await audiences_repo.delete(parsed_id)
    logger.info("audiences.deleted", audience_id=audience_id, user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
