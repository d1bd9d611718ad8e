from __future__ import annotations

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """Offset pagination accepted by list endpoints."""

    limit: int = Field(default=20, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class PaginationMeta(BaseModel):
    limit: int
    offset: int
    count: int = Field(description="Items in this page")
    total: int = Field(description="Items across every page")
    has_more: bool
    next_offset: int | None = None
