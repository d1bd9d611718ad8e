from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from .pagination import PaginationMeta


class VideoCreate(BaseModel):
    youtube_id: str = Field(..., min_length=11, max_length=11)
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    duration_seconds: Optional[float] = Field(default=None, ge=0)
    thumbnail_url: Optional[str] = None
    channel_name: Optional[str] = Field(default=None, max_length=255)


class Video(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    youtube_id: str
    title: str
    description: Optional[str] = None
    duration_seconds: Optional[float] = Field(
        default=None, ge=0, description="Length derived from the transcript timing"
    )
    thumbnail_url: Optional[str] = None
    channel_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class VideoListResponse(BaseModel):
    data: list[Video]
    count: int
    pagination: PaginationMeta
