from __future__ import annotations

from fastapi import APIRouter, Depends

from ...core.subscriptions import get_subscription_limits
from ...domain.subscriptions import (
    SubscriptionLimitsResponse,
    SubscriptionResponse,
    SubscriptionTier,
)
from ...domain.users import User
from ...services.subscriptions import SubscriptionService
from ..dependencies import get_current_user, get_subscription_service

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("", response_model=SubscriptionResponse)
async def get_subscription(
    current_user: User = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionResponse:
    summary = await subscriptions.get_summary(current_user)
    return SubscriptionResponse(data=summary)


@router.get("/limits/{tier}", response_model=SubscriptionLimitsResponse)
async def get_tier_limits(tier: SubscriptionTier) -> SubscriptionLimitsResponse:
    return SubscriptionLimitsResponse(tier=tier, data=get_subscription_limits(tier))
