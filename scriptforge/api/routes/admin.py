from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from ...domain.subscriptions import AdminSubscriptionUpdate
from ...domain.users import User, UserResponse
from ...services.subscriptions import SubscriptionService, UserNotFoundError
from ..dependencies import get_subscription_service, require_admin

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])


@router.put("/users/{user_id}/subscription", response_model=UserResponse)
async def set_user_subscription(
    user_id: str,
    payload: AdminSubscriptionUpdate,
    admin: User = Depends(require_admin),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> UserResponse:
    try:
        user = await subscriptions.set_tier(
            user_id, payload.tier, payload.status, actor_id=admin.id
        )
    except UserNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        ) from exc
    logger.info(
        "admin.subscription_set",
        admin_id=admin.id,
        user_id=user_id,
        tier=payload.tier.value,
        status=payload.status.value,
    )
    return UserResponse(data=user)
