from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...domain.hooks import (
    HookFilters,
    HookListResponse,
    HookResponse,
    HookStatsResponse,
)
from ...services.hooks import HookCatalog, validate_hook_filters
from ..dependencies import get_hook_catalog

router = APIRouter(prefix="/hooks", tags=["hooks"])


def _parse_filters(
    style: str | None,
    tone: str | None,
    audience: str | None,
    limit: int | None,
) -> HookFilters:
    errors = validate_hook_filters(style=style, tone=tone, audience=audience, limit=limit)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Invalid filter parameters", "errors": errors},
        )
    values: dict[str, object] = {"style": style, "tone": tone, "audience": audience}
    if limit is not None:
        values["limit"] = limit
    return HookFilters.model_validate(values)


@router.get("", response_model=HookListResponse)
async def list_hooks(
    style: str | None = Query(default=None),
    tone: str | None = Query(default=None),
    audience: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    catalog: HookCatalog = Depends(get_hook_catalog),
) -> HookListResponse:
    filters = _parse_filters(style, tone, audience, limit)
    hooks = catalog.get_hooks(filters)
    return HookListResponse(data=hooks, count=len(hooks), filters=filters)


@router.get("/random", response_model=HookResponse)
async def random_hook(
    style: str | None = Query(default=None),
    tone: str | None = Query(default=None),
    audience: str | None = Query(default=None),
    catalog: HookCatalog = Depends(get_hook_catalog),
) -> HookResponse:
    filters = _parse_filters(style, tone, audience, None)
    hook = catalog.random_hook(filters)
    if hook is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No hooks match the given filters",
        )
    return HookResponse(data=hook)


@router.get("/stats", response_model=HookStatsResponse)
async def hook_stats(catalog: HookCatalog = Depends(get_hook_catalog)) -> HookStatsResponse:
    return HookStatsResponse(data=catalog.stats())
