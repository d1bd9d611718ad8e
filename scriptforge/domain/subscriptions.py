from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SubscriptionTier(str, Enum):
    FREE = "FREE"
    PRO = "PRO"
    BUSINESS = "BUSINESS"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    TRIALING = "TRIALING"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    INACTIVE = "INACTIVE"

    @property
    def is_entitled(self) -> bool:
        return self in {SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING}


class SupportLevel(str, Enum):
    BASIC = "basic"
    PRIORITY = "priority"
    DEDICATED = "dedicated"


class SubscriptionLimits(BaseModel):
    """Feature switches and quotas granted by a tier. ``-1`` means unlimited."""

    monthly_scripts: int = Field(ge=-1)
    priority_processing: bool = False
    advanced_styles: bool = False
    watermark_free: bool = False
    api_access: bool = False
    team_members: int = Field(default=1, ge=-1)
    support_level: SupportLevel = SupportLevel.BASIC
    hook_generation: bool = False
    title_and_thumbnail_pack: bool = False
    cta_integration: bool = False
    relink_outros: bool = False
    click_confirmation: bool = True
    payout_structure: bool = False
    key_points_integration: bool = False
    custom_instructions: bool = False
    script_remixing: bool = False
    creativity_controls: bool = False
    batch_generation: bool = False
    ab_testing: bool = False
    template_library: bool = False


class UsageInfo(BaseModel):
    used: int = Field(ge=0)
    limit: int = Field(description="Monthly allowance, -1 when unlimited")
    remaining: int = Field(description="Scripts left this month, -1 when unlimited")
    reset_date: datetime = Field(description="First day of the next calendar month")
    can_generate: bool


class SubscriptionSummary(BaseModel):
    tier: SubscriptionTier
    effective_tier: SubscriptionTier
    status: SubscriptionStatus
    limits: SubscriptionLimits
    usage: UsageInfo
    available_styles: list[str]
    subscription_start: datetime | None = None
    subscription_end: datetime | None = None
    total_scripts: int = 0
    is_admin: bool = False


class SubscriptionResponse(BaseModel):
    data: SubscriptionSummary


class SubscriptionLimitsResponse(BaseModel):
    tier: SubscriptionTier
    data: SubscriptionLimits


class UsageLimitExceededPayload(BaseModel):
    """Returned with 429 when the monthly script allowance is spent."""

    message: str = Field(default="Monthly script limit reached")
    tier: SubscriptionTier
    usage: UsageInfo


class FeatureLockedPayload(BaseModel):
    """Returned with 403 when a feature is outside the caller's tier."""

    message: str
    feature: str
    required_tier: SubscriptionTier
    current_tier: SubscriptionTier


class AdminSubscriptionUpdate(BaseModel):
    tier: SubscriptionTier
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE


class UsageLog(BaseModel):
    id: int | None = None
    user_id: str
    action: str
    details: dict[str, object] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True
