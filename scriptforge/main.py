from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes.admin import router as admin_router
from .api.routes.audiences import router as audiences_router
from .api.routes.billing import router as billing_router
from .api.routes.health import router as health_router
from .api.routes.hooks import router as hooks_router
from .api.routes.scripts import router as scripts_router
from .api.routes.subscription import router as subscription_router
from .api.routes.transcripts import router as transcripts_router
from .api.routes.users import router as users_router
from .api.routes.videos import router as videos_router
from .core.config import get_settings
from .core.logging import configure_logging
from .db import init_db
from .telemetry import configure_tracing, setup_prometheus


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging()
    app = FastAPI(title=settings.project_name, version="0.1.0")

    allow_origins = settings.cors_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in allow_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        await init_db()

    @app.get("/healthz")
    def healthz() -> dict[str, str | bool]:
        return {"ok": True, "service": "scriptforge-api"}

    app.include_router(health_router)
    app.include_router(users_router, prefix=settings.api_v1_prefix)
    app.include_router(transcripts_router, prefix=settings.api_v1_prefix)
    app.include_router(videos_router, prefix=settings.api_v1_prefix)
    app.include_router(scripts_router, prefix=settings.api_v1_prefix)
    app.include_router(hooks_router, prefix=settings.api_v1_prefix)
    app.include_router(audiences_router, prefix=settings.api_v1_prefix)
    app.include_router(subscription_router, prefix=settings.api_v1_prefix)
    app.include_router(billing_router, prefix=settings.api_v1_prefix)
    app.include_router(admin_router, prefix=settings.api_v1_prefix)

    if settings.enable_prometheus_metrics:
        setup_prometheus(app)
    configure_tracing(app)

    return app


app = create_app()
