"""Request quota state shared by the rate limit repositories and dependencies."""

from __future__ import annotations

from pydantic import BaseModel, Field


class RateLimitStatus(BaseModel):
    """Outcome of recording one request against a fixed window."""

    allowed: bool
    limit: int = Field(ge=0, description="Requests permitted per window")
    remaining: int = Field(ge=0, description="Requests left in the current window")
    retry_after_seconds: int = Field(
        ge=0, description="Seconds until the window reopens when blocked"
    )


class RateLimitExceededPayload(BaseModel):
    message: str = Field(default="Rate limit exceeded")
    scope: str
    limit: int = Field(ge=0)
    retry_after: int = Field(ge=0)
