from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .scripts import ScriptStyle, Tone


class HookAudience(str, Enum):
    GENERAL = "general"
    BEGINNERS = "beginners"
    PROFESSIONALS = "professionals"
    STUDENTS = "students"
    EXPERTS = "experts"


class HookRow(BaseModel):
    """One pre-authored opener from the packaged catalogue."""

    id: str
    hook: str
    styles: list[ScriptStyle]
    tones: list[Tone]
    audiences: list[HookAudience]


class HookFilters(BaseModel):
    style: Optional[ScriptStyle] = None
    tone: Optional[Tone] = None
    audience: Optional[HookAudience] = None
    limit: int = Field(default=20, ge=1, le=50)


class HookListResponse(BaseModel):
    data: list[HookRow]
    count: int
    filters: HookFilters


class HookResponse(BaseModel):
    data: HookRow


class HookStats(BaseModel):
    total_hooks: int
    style_stats: dict[str, int]
    tone_stats: dict[str, int]
    audience_stats: dict[str, int]


class HookStatsResponse(BaseModel):
    data: HookStats
