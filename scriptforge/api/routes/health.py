from __future__ import annotations

from time import perf_counter

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ...core.config import get_settings
from ...db import ping_database
from ...domain.health import ComponentCheck, HealthState, ReadinessReport

logger = structlog.get_logger()

APP_VERSION = "0.1.0"

router = APIRouter(prefix="/health", tags=["health"])


async def _check_database() -> ComponentCheck:
    started = perf_counter()
    try:
        await ping_database()
    except (RuntimeError, SQLAlchemyError, OSError) as exc:
        logger.warning("health.database_unreachable", error=str(exc))
        return ComponentCheck(status=HealthState.UNHEALTHY, error=str(exc))
    return ComponentCheck(
        status=HealthState.HEALTHY,
        response_time_ms=int((perf_counter() - started) * 1000),
    )


def _check_configured(value: str | None, name: str) -> ComponentCheck:
    if value:
        return ComponentCheck(status=HealthState.HEALTHY)
    return ComponentCheck(status=HealthState.DEGRADED, error=f"{name} is not configured")


def _overall(checks: dict[str, ComponentCheck]) -> HealthState:
    states = {check.status for check in checks.values()}
    if HealthState.UNHEALTHY in states:
        return HealthState.UNHEALTHY
    if HealthState.DEGRADED in states:
        return HealthState.DEGRADED
    return HealthState.HEALTHY


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready", response_model=ReadinessReport)
async def readiness() -> JSONResponse:
    settings = get_settings()
    checks = {
        "database": await _check_database(),
        "openai": _check_configured(settings.openai_api_key, "OPENAI_API_KEY"),
        "stripe": _check_configured(settings.stripe_secret_key, "STRIPE_SECRET_KEY"),
    }
    report = ReadinessReport(
        status=_overall(checks),
        version=APP_VERSION,
        environment=settings.app_env,
        checks=checks,
    )
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report.status == HealthState.UNHEALTHY
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=report.model_dump(mode="json"))
