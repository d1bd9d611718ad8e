"""Tier lookups: feature switches, quotas, usage windows and admin overrides."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict

from ..domain.scripts import ADVANCED_STYLES, ScriptStyle
from ..domain.subscriptions import (
    SubscriptionLimits,
    SubscriptionTier,
    SupportLevel,
)
from ..domain.users import User
from .config import get_settings

UNLIMITED = -1

TIER_ORDER: tuple[SubscriptionTier, ...] = (
    SubscriptionTier.FREE,
    SubscriptionTier.PRO,
    SubscriptionTier.BUSINESS,
    SubscriptionTier.ENTERPRISE,
)

# Features unlocked from PRO upwards.
_PRO_FEATURES = {
    "priority_processing": True,
    "advanced_styles": True,
    "watermark_free": True,
    "api_access": True,
    "hook_generation": True,
    "title_and_thumbnail_pack": True,
    "cta_integration": True,
    "relink_outros": True,
    "payout_structure": True,
    "key_points_integration": True,
    "custom_instructions": True,
    "script_remixing": True,
    "creativity_controls": True,
}


def _plan_scripts_map() -> Dict[SubscriptionTier, int]:
    settings = get_settings()
    return {
        SubscriptionTier.FREE: settings.plan_scripts_quota_free,
        SubscriptionTier.PRO: settings.plan_scripts_quota_pro,
        SubscriptionTier.BUSINESS: settings.plan_scripts_quota_business,
        SubscriptionTier.ENTERPRISE: settings.plan_scripts_quota_enterprise,
    }


def get_subscription_limits(tier: SubscriptionTier) -> SubscriptionLimits:
    """Return the feature table entry for a tier."""

    monthly_scripts = _plan_scripts_map()[tier]
    match tier:
        case SubscriptionTier.FREE:
            return SubscriptionLimits(monthly_scripts=monthly_scripts)
        case SubscriptionTier.PRO:
            return SubscriptionLimits(
                monthly_scripts=monthly_scripts,
                support_level=SupportLevel.PRIORITY,
                **_PRO_FEATURES,
            )
        case SubscriptionTier.BUSINESS:
            return SubscriptionLimits(
                monthly_scripts=monthly_scripts,
                team_members=5,
                support_level=SupportLevel.PRIORITY,
                batch_generation=True,
                ab_testing=True,
                **_PRO_FEATURES,
            )
        case SubscriptionTier.ENTERPRISE:
            return SubscriptionLimits(
                monthly_scripts=monthly_scripts,
                team_members=UNLIMITED,
                support_level=SupportLevel.DEDICATED,
                batch_generation=True,
                ab_testing=True,
                template_library=True,
                **_PRO_FEATURES,
            )
    raise ValueError(f"Unknown subscription tier: {tier}")


def feature_enabled(tier: SubscriptionTier, feature: str) -> bool:
    limits = get_subscription_limits(tier)
    value = getattr(limits, feature)
    if not isinstance(value, bool):
        raise ValueError(f"{feature} is not a feature switch")
    return value


def minimum_tier_for(feature: str) -> SubscriptionTier:
    """Lowest tier that unlocks a feature switch."""

    for tier in TIER_ORDER:
        if feature_enabled(tier, feature):
            return tier
    return SubscriptionTier.ENTERPRISE


def has_advanced_style_access(tier: SubscriptionTier, style: ScriptStyle) -> bool:
    if style not in ADVANCED_STYLES:
        return True
    return get_subscription_limits(tier).advanced_styles


def has_priority_processing(tier: SubscriptionTier) -> bool:
    return get_subscription_limits(tier).priority_processing


def should_have_watermark(tier: SubscriptionTier) -> bool:
    return not get_subscription_limits(tier).watermark_free


def get_available_styles(tier: SubscriptionTier) -> list[ScriptStyle]:
    return [style for style in ScriptStyle if has_advanced_style_access(tier, style)]


def is_master_admin(email: str | None, user_id: str | None) -> bool:
    settings = get_settings()
    if email and email.strip().lower() in settings.admin_email_list:
        return True
    return bool(user_id) and user_id in settings.admin_user_id_list


def get_effective_tier(user: User) -> SubscriptionTier:
    """Tier used for gating: admins get ENTERPRISE, lapsed subscriptions fall to FREE."""

    if is_master_admin(user.email, user.id):
        return SubscriptionTier.ENTERPRISE
    if not user.subscription_status.is_entitled:
        return SubscriptionTier.FREE
    return user.subscription_tier


def next_usage_reset(now: datetime) -> datetime:
    """First instant of the calendar month after ``now``."""

    if now.month == 12:
        return datetime(now.year + 1, 1, 1)
    return datetime(now.year, now.month + 1, 1)


def needs_usage_reset(last_reset: datetime, now: datetime) -> bool:
    return (last_reset.year, last_reset.month) != (now.year, now.month)


def compute_subscription_end(
    tier: SubscriptionTier, start: datetime
) -> datetime | None:
    if tier == SubscriptionTier.FREE:
        return None
    return start + timedelta(days=get_settings().subscription_cycle_days)


WATERMARK_TEXT = "*Generated by ScriptForge AI - Upgrade to Pro to remove this watermark*"


def apply_watermark(content: str) -> str:
    if content.rstrip().endswith(WATERMARK_TEXT):
        return content
    return f"{content}\n\n---\n\n{WATERMARK_TEXT}"
