from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..core.security import decode_access_token
from ..core.subscriptions import (
    feature_enabled,
    get_effective_tier,
    is_master_admin,
    minimum_tier_for,
)
from ..db import get_session
from ..domain.pagination import PaginationParams
from ..domain.rate_limits import RateLimitExceededPayload, RateLimitStatus
from ..domain.subscriptions import (
    FeatureLockedPayload,
    UsageInfo,
    UsageLimitExceededPayload,
)
from ..domain.users import User
from ..repositories.audiences import AudiencesRepository, SqlAlchemyAudiencesRepository
from ..repositories.rate_limits import (
    RateLimitRepository,
    SqlAlchemyRateLimitRepository,
)
from ..repositories.scripts import ScriptsRepository, SqlAlchemyScriptsRepository
from ..repositories.transcripts import (
    SqlAlchemyTranscriptsRepository,
    TranscriptsRepository,
)
from ..repositories.usage_logs import SqlAlchemyUsageLogsRepository, UsageLogsRepository
from ..repositories.users import SqlAlchemyUsersRepository, UsersRepository
from ..repositories.videos import SqlAlchemyVideosRepository, VideosRepository
from ..services.billing_webhooks import BillingWebhookHandler
from ..services.hooks import HookCatalog, load_hook_catalog
from ..services.script_generator import (
    ScriptGenerator,
    ScriptGeneratorConfigError,
    build_generator_from_settings,
)
from ..services.stripe_gateway import (
    StripeConfigError,
    StripeGateway,
    build_gateway_from_settings,
)
from ..services.subscriptions import SubscriptionService
from ..services.youtube import YouTubeClient

AI_GENERATION_SCOPE = "ai:generation"

_http_bearer = HTTPBearer(auto_error=False)
_youtube_client: YouTubeClient | None = None
_script_generator: ScriptGenerator | None = None
_stripe_gateway: StripeGateway | None = None


async def get_users_repository(
    session: AsyncSession = Depends(get_session),
) -> UsersRepository:
    return SqlAlchemyUsersRepository(session)


async def get_usage_logs_repository(
    session: AsyncSession = Depends(get_session),
) -> UsageLogsRepository:
    return SqlAlchemyUsageLogsRepository(session)


async def get_videos_repository(
    session: AsyncSession = Depends(get_session),
) -> VideosRepository:
    return SqlAlchemyVideosRepository(session)


async def get_transcripts_repository(
    session: AsyncSession = Depends(get_session),
) -> TranscriptsRepository:
    return SqlAlchemyTranscriptsRepository(session)


async def get_scripts_repository(
    session: AsyncSession = Depends(get_session),
) -> ScriptsRepository:
    return SqlAlchemyScriptsRepository(session)


async def get_audiences_repository(
    session: AsyncSession = Depends(get_session),
) -> AudiencesRepository:
    return SqlAlchemyAudiencesRepository(session)


async def get_rate_limit_repository(
    session: AsyncSession = Depends(get_session),
) -> RateLimitRepository:
    return SqlAlchemyRateLimitRepository(session)


async def get_pagination_params(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
) -> PaginationParams:
    return PaginationParams(limit=limit, offset=offset)


async def get_youtube_client() -> YouTubeClient:
    global _youtube_client
    if _youtube_client is None:
        _youtube_client = YouTubeClient()
    return _youtube_client


async def get_script_generator() -> ScriptGenerator:
    global _script_generator
    if _script_generator is None:
        try:
            _script_generator = build_generator_from_settings()
        except ScriptGeneratorConfigError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
    return _script_generator


async def get_stripe_gateway() -> StripeGateway:
    global _stripe_gateway
    if _stripe_gateway is None:
        try:
            _stripe_gateway = build_gateway_from_settings()
        except StripeConfigError as exc:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
    return _stripe_gateway


async def get_hook_catalog() -> HookCatalog:
    return load_hook_catalog()


async def get_subscription_service(
    users_repo: UsersRepository = Depends(get_users_repository),
    usage_logs_repo: UsageLogsRepository = Depends(get_usage_logs_repository),
) -> SubscriptionService:
    return SubscriptionService(users_repo, usage_logs_repo)


async def get_billing_webhook_handler(
    gateway: StripeGateway = Depends(get_stripe_gateway),
    users_repo: UsersRepository = Depends(get_users_repository),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> BillingWebhookHandler:
    return BillingWebhookHandler(gateway, users_repo, subscriptions)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_http_bearer),
    users_repo: UsersRepository = Depends(get_users_repository),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )
    return await users_repo.ensure(
        subject,
        email=payload.get("email"),
        name=payload.get("name"),
    )


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not is_master_admin(current_user.email, current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user


def _scope_defaults(scope: str) -> tuple[int, int]:
    settings = get_settings()
    if scope == AI_GENERATION_SCOPE:
        return settings.ai_generation_rate_limit, settings.ai_generation_window_seconds
    return settings.rate_limit_requests_per_minute, settings.rate_limit_window_seconds


def enforce_rate_limit(
    scope: str,
    *,
    limit: int | None = None,
    window_seconds: int | None = None,
) -> Callable[..., RateLimitStatus]:
    """Dependency factory that enforces per-user quotas for a scope."""

    async def dependency(
        current_user: User = Depends(get_current_user),
        repo: RateLimitRepository = Depends(get_rate_limit_repository),
    ) -> RateLimitStatus:
        default_limit, default_window = _scope_defaults(scope)
        quota = await repo.hit(
            scope=scope,
            key=current_user.id,
            limit=limit or default_limit,
            window_seconds=window_seconds or default_window,
        )
        if not quota.allowed:
            payload = RateLimitExceededPayload(
                scope=scope,
                limit=quota.limit,
                retry_after=quota.retry_after_seconds,
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=payload.model_dump(),
                headers={"Retry-After": str(quota.retry_after_seconds)},
            )
        return quota

    return dependency


def ensure_feature(user: User, feature: str, label: str) -> None:
    """Raise 403 unless the caller's effective tier unlocks ``feature``."""

    tier = get_effective_tier(user)
    if feature_enabled(tier, feature):
        return
    required = minimum_tier_for(feature)
    payload = FeatureLockedPayload(
        message=f"{label} requires a {required.value.title()} subscription",
        feature=feature,
        required_tier=required,
        current_tier=tier,
    )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=payload.model_dump(mode="json"),
    )


async def ensure_usage_available(
    service: SubscriptionService, user: User
) -> UsageInfo:
    """Raise 429 when the monthly script allowance is spent."""

    usage = await service.check_usage(user.id)
    if not usage.can_generate:
        payload = UsageLimitExceededPayload(tier=get_effective_tier(user), usage=usage)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=payload.model_dump(mode="json"),
        )
    return usage
