from __future__ import annotations

import re
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

AUDIENCE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-_]+$")


class DefaultAudience(BaseModel):
    id: str
    name: str
    description: str


DEFAULT_AUDIENCES: tuple[DefaultAudience, ...] = (
    DefaultAudience(
        id="general",
        name="General",
        description="General audience with varied interests",
    ),
    DefaultAudience(
        id="beginners",
        name="Beginners",
        description="People new to the topic or field",
    ),
    DefaultAudience(
        id="professionals",
        name="Professionals",
        description="Working professionals in the industry",
    ),
    DefaultAudience(
        id="students",
        name="Students",
        description="Students learning about the topic",
    ),
    DefaultAudience(
        id="experts",
        name="Experts",
        description="Advanced practitioners and experts",
    ),
    DefaultAudience(
        id="entrepreneurs",
        name="Entrepreneurs",
        description="Business owners and startup founders",
    ),
    DefaultAudience(
        id="content_creators",
        name="Content Creators",
        description="YouTubers, bloggers, and content producers",
    ),
    DefaultAudience(
        id="small_business",
        name="Small Business Owners",
        description="Small business owners and operators",
    ),
)


def is_default_audience_name(name: str) -> bool:
    lowered = name.strip().lower()
    return any(
        lowered == audience.name.lower() or lowered == audience.id
        for audience in DEFAULT_AUDIENCES
    )


class CustomAudienceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Audience name is required")
        if not AUDIENCE_NAME_PATTERN.match(value):
            raise ValueError(
                "Audience name can only contain letters, numbers, spaces, hyphens, and underscores"
            )
        return value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class CustomAudience(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class AudienceView(BaseModel):
    """Default and custom audiences share this shape in listings."""

    id: str
    name: str
    description: Optional[str] = None
    is_default: bool
    created_at: Optional[datetime] = None


class AudienceListResponse(BaseModel):
    data: list[AudienceView]
    count: int


class AudienceResponse(BaseModel):
    data: AudienceView
