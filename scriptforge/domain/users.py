from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .subscriptions import SubscriptionStatus, SubscriptionTier


class User(BaseModel):
    """Account record bootstrapped from identity provider claims."""

    id: str = Field(..., min_length=1, max_length=255, description="Identity provider subject")
    email: Optional[str] = Field(default=None, max_length=320)
    name: Optional[str] = Field(default=None, max_length=160)
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    subscription_start: Optional[datetime] = None
    subscription_end: Optional[datetime] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    monthly_script_count: int = Field(default=0, ge=0)
    total_script_count: int = Field(default=0, ge=0)
    last_usage_reset: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    data: User
