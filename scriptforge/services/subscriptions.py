"""Usage accounting and subscription state changes for a single user."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

import structlog

from ..core.subscriptions import (
    UNLIMITED,
    compute_subscription_end,
    get_available_styles,
    get_effective_tier,
    get_subscription_limits,
    is_master_admin,
    needs_usage_reset,
    next_usage_reset,
)
from ..domain.subscriptions import (
    SubscriptionStatus,
    SubscriptionSummary,
    SubscriptionTier,
    UsageInfo,
)
from ..domain.users import User
from ..repositories.usage_logs import UsageLogsRepository
from ..repositories.users import UsersRepository

logger = structlog.get_logger()


class UserNotFoundError(LookupError):
    """Raised when an operation targets a user that does not exist."""


class SubscriptionService:
    def __init__(
        self,
        users_repo: UsersRepository,
        usage_logs_repo: UsageLogsRepository,
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._users = users_repo
        self._usage_logs = usage_logs_repo
        self._clock = clock

    async def _require(self, user_id: str) -> User:
        user = await self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return user

    async def _refresh(self, user: User, now: datetime) -> User:
        """Apply the lapsed-subscription downgrade and the monthly counter reset."""

        changes: dict[str, Any] = {}
        if not user.subscription_status.is_entitled and user.subscription_tier != SubscriptionTier.FREE:
            changes["subscription_tier"] = SubscriptionTier.FREE
        if needs_usage_reset(user.last_usage_reset, now):
            changes["monthly_script_count"] = 0
            changes["last_usage_reset"] = now
        if not changes:
            return user
        updated = await self._users.update(user.id, **changes)
        if "subscription_tier" in changes:
            logger.info(
                "subscription.downgraded_inactive",
                user_id=user.id,
                previous_tier=user.subscription_tier.value,
                status=user.subscription_status.value,
            )
        return updated or user

    def _usage_for(self, user: User, now: datetime) -> UsageInfo:
        limit = get_subscription_limits(get_effective_tier(user)).monthly_scripts
        used = user.monthly_script_count
        if limit == UNLIMITED:
            return UsageInfo(
                used=used,
                limit=UNLIMITED,
                remaining=UNLIMITED,
                reset_date=next_usage_reset(now),
                can_generate=True,
            )
        remaining = max(limit - used, 0)
        return UsageInfo(
            used=used,
            limit=limit,
            remaining=remaining,
            reset_date=next_usage_reset(now),
            can_generate=remaining > 0,
        )

    async def check_usage(self, user_id: str) -> UsageInfo:
        now = self._clock()
        user = await self._refresh(await self._require(user_id), now)
        return self._usage_for(user, now)

    async def record_usage(
        self,
        user_id: str,
        action: str = "script_generated",
        details: dict[str, Any] | None = None,
    ) -> User:
        user = await self._users.increment_usage(user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found")
        await self._usage_logs.add(user_id, action, details or {})
        logger.info(
            "usage.recorded",
            user_id=user_id,
            action=action,
            monthly=user.monthly_script_count,
        )
        return user

    async def get_summary(self, user: User) -> SubscriptionSummary:
        now = self._clock()
        user = await self._refresh(user, now)
        effective = get_effective_tier(user)
        return SubscriptionSummary(
            tier=user.subscription_tier,
            effective_tier=effective,
            status=user.subscription_status,
            limits=get_subscription_limits(effective),
            usage=self._usage_for(user, now),
            available_styles=[style.value for style in get_available_styles(effective)],
            subscription_start=user.subscription_start,
            subscription_end=user.subscription_end,
            total_scripts=user.total_script_count,
            is_admin=is_master_admin(user.email, user.id),
        )

    async def upgrade(
        self,
        user_id: str,
        tier: SubscriptionTier,
        *,
        customer_id: str | None = None,
        subscription_id: str | None = None,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ) -> User:
        await self._require(user_id)
        now = self._clock()
        changes: dict[str, Any] = {
            "subscription_tier": tier,
            "subscription_status": status,
            "subscription_start": now,
            "subscription_end": compute_subscription_end(tier, now),
        }
        if customer_id:
            changes["stripe_customer_id"] = customer_id
        if subscription_id:
            changes["stripe_subscription_id"] = subscription_id
        user = await self._users.update(user_id, **changes)
        await self._usage_logs.add(
            user_id,
            "subscription_upgraded",
            {"tier": tier.value, "status": status.value, "subscription_id": subscription_id},
        )
        logger.info("subscription.upgraded", user_id=user_id, tier=tier.value)
        return user

    async def cancel(self, user_id: str) -> User:
        await self._require(user_id)
        user = await self._users.update(
            user_id, subscription_status=SubscriptionStatus.CANCELED
        )
        await self._usage_logs.add(user_id, "subscription_canceled", {})
        logger.info("subscription.canceled", user_id=user_id)
        return user

    async def mark_past_due(self, user_id: str) -> User:
        await self._require(user_id)
        user = await self._users.update(
            user_id, subscription_status=SubscriptionStatus.PAST_DUE
        )
        logger.warning("subscription.past_due", user_id=user_id)
        return user

    async def set_tier(
        self,
        user_id: str,
        tier: SubscriptionTier,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        *,
        actor_id: str | None = None,
    ) -> User:
        """Administrative override that bypasses billing."""

        user = await self.upgrade(user_id, tier, status=status)
        await self._usage_logs.add(
            user_id,
            "subscription_admin_override",
            {"tier": tier.value, "status": status.value, "actor_id": actor_id},
        )
        return user
