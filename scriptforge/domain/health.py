from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentCheck(BaseModel):
    status: HealthState
    response_time_ms: Optional[int] = None
    error: Optional[str] = None


class ReadinessReport(BaseModel):
    status: HealthState
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
    environment: str
    checks: dict[str, ComponentCheck]
