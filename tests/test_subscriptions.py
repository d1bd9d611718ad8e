"""
Tests for tier limits, effective tiers, usage accounting and watermarks.
"""

import asyncio
from datetime import datetime

import pytest
from hypothesis import given, settings, strategies as st

from scriptforge.core.subscriptions import (
    TIER_ORDER,
    WATERMARK_TEXT,
    apply_watermark,
    compute_subscription_end,
    feature_enabled,
    get_available_styles,
    get_effective_tier,
    get_subscription_limits,
    has_advanced_style_access,
    minimum_tier_for,
    needs_usage_reset,
    next_usage_reset,
    should_have_watermark,
)
from scriptforge.domain.scripts import ADVANCED_STYLES, ScriptStyle
from scriptforge.domain.subscriptions import SubscriptionStatus, SubscriptionTier
from scriptforge.domain.users import User
from scriptforge.repositories.usage_logs import InMemoryUsageLogsRepository
from scriptforge.repositories.users import InMemoryUsersRepository
from scriptforge.services.subscriptions import SubscriptionService, UserNotFoundError


def test_monthly_allowances_per_tier():
    assert get_subscription_limits(SubscriptionTier.FREE).monthly_scripts == 2
    assert get_subscription_limits(SubscriptionTier.PRO).monthly_scripts == 50
    assert get_subscription_limits(SubscriptionTier.BUSINESS).monthly_scripts == 200
    assert get_subscription_limits(SubscriptionTier.ENTERPRISE).monthly_scripts == -1


def test_free_tier_only_keeps_click_confirmation():
    limits = get_subscription_limits(SubscriptionTier.FREE)
    assert limits.click_confirmation
    assert not limits.advanced_styles
    assert not limits.watermark_free
    assert not limits.script_remixing
    assert not limits.hook_generation


def test_higher_tiers_add_team_features():
    assert get_subscription_limits(SubscriptionTier.PRO).team_members == 1
    assert get_subscription_limits(SubscriptionTier.BUSINESS).team_members == 5
    assert get_subscription_limits(SubscriptionTier.ENTERPRISE).team_members == -1
    assert not feature_enabled(SubscriptionTier.BUSINESS, "template_library")
    assert feature_enabled(SubscriptionTier.ENTERPRISE, "template_library")


@pytest.mark.parametrize(
    ("feature", "tier"),
    [
        ("click_confirmation", SubscriptionTier.FREE),
        ("hook_generation", SubscriptionTier.PRO),
        ("batch_generation", SubscriptionTier.BUSINESS),
        ("template_library", SubscriptionTier.ENTERPRISE),
    ],
)
def test_minimum_tier_for_feature(feature, tier):
    assert minimum_tier_for(feature) == tier


def test_feature_enabled_rejects_quota_fields():
    with pytest.raises(ValueError):
        feature_enabled(SubscriptionTier.PRO, "monthly_scripts")


@settings(max_examples=100)
@given(tier=st.sampled_from(TIER_ORDER), feature=st.sampled_from(
    ["advanced_styles", "watermark_free", "hook_generation", "script_remixing", "batch_generation", "ab_testing"]
))
def test_features_are_monotonic_across_tiers(tier, feature):
    """
    Property: once a tier unlocks a feature every higher tier keeps it.
    """
    if feature_enabled(tier, feature):
        for higher in TIER_ORDER[TIER_ORDER.index(tier):]:
            assert feature_enabled(higher, feature)


@settings(max_examples=100)
@given(tier=st.sampled_from(TIER_ORDER), style=st.sampled_from(list(ScriptStyle)))
def test_advanced_styles_require_paid_tier(tier, style):
    allowed = has_advanced_style_access(tier, style)
    if style in ADVANCED_STYLES:
        assert allowed == (tier != SubscriptionTier.FREE)
    else:
        assert allowed
    assert (style in get_available_styles(tier)) == allowed


def test_only_free_tier_gets_watermark():
    assert should_have_watermark(SubscriptionTier.FREE)
    assert not any(should_have_watermark(tier) for tier in TIER_ORDER[1:])


def test_admin_email_is_treated_as_enterprise():
    admin = User(id="someone", email="Admin@ScriptForge.test")
    assert get_effective_tier(admin) == SubscriptionTier.ENTERPRISE


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (SubscriptionStatus.ACTIVE, SubscriptionTier.PRO),
        (SubscriptionStatus.TRIALING, SubscriptionTier.PRO),
        (SubscriptionStatus.PAST_DUE, SubscriptionTier.FREE),
        (SubscriptionStatus.CANCELED, SubscriptionTier.FREE),
        (SubscriptionStatus.INACTIVE, SubscriptionTier.FREE),
    ],
)
def test_lapsed_subscriptions_fall_back_to_free(status, expected):
    user = User(id="u1", subscription_tier=SubscriptionTier.PRO, subscription_status=status)
    assert get_effective_tier(user) == expected


@settings(max_examples=100)
@given(now=st.datetimes(min_value=datetime(2000, 1, 1), max_value=datetime(2100, 12, 31)))
def test_next_usage_reset_is_first_of_following_month(now):
    """
    Property: the reset date is midnight on day one of the next month.
    """
    reset = next_usage_reset(now)
    assert reset.day == 1
    assert reset > now
    assert (reset.year * 12 + reset.month) - (now.year * 12 + now.month) == 1
    assert reset.hour == reset.minute == reset.second == 0


def test_needs_usage_reset_compares_calendar_months():
    assert not needs_usage_reset(datetime(2024, 3, 1), datetime(2024, 3, 31, 23, 59))
    assert needs_usage_reset(datetime(2024, 3, 31), datetime(2024, 4, 1))
    assert needs_usage_reset(datetime(2023, 4, 15), datetime(2024, 4, 15))


def test_subscription_end_follows_cycle_length():
    start = datetime(2024, 1, 10)
    assert compute_subscription_end(SubscriptionTier.FREE, start) is None
    assert compute_subscription_end(SubscriptionTier.PRO, start) == datetime(2024, 2, 9)


@settings(max_examples=100)
@given(content=st.text(max_size=200))
def test_apply_watermark_is_idempotent(content):
    """
    Property: watermarking twice adds the footer only once.
    """
    once = apply_watermark(content)
    assert once.rstrip().endswith(WATERMARK_TEXT)
    assert apply_watermark(once) == once
    assert once.count(WATERMARK_TEXT) == content.count(WATERMARK_TEXT) + (
        0 if content.rstrip().endswith(WATERMARK_TEXT) else 1
    )


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _service(clock: FrozenClock):
    users = InMemoryUsersRepository()
    logs = InMemoryUsageLogsRepository()
    return users, logs, SubscriptionService(users, logs, clock=clock)


def test_free_user_runs_out_after_two_scripts():
    clock = FrozenClock(datetime(2024, 5, 10))

    async def scenario():
        users, logs, service = _service(clock)
        await users.ensure("u1", email="u1@example.com")
        await users.update("u1", last_usage_reset=clock.now)
        first = await service.check_usage("u1")
        await service.record_usage("u1")
        await service.record_usage("u1")
        after = await service.check_usage("u1")
        return first, after, await logs.list_for_user("u1")

    first, after, entries = asyncio.run(scenario())
    assert (first.used, first.limit, first.remaining, first.can_generate) == (0, 2, 2, True)
    assert (after.used, after.remaining, after.can_generate) == (2, 0, False)
    assert after.reset_date == datetime(2024, 6, 1)
    assert [entry.action for entry in entries].count("script_generated") == 2


def test_usage_resets_when_month_changes():
    clock = FrozenClock(datetime(2024, 5, 31, 23, 0))

    async def scenario():
        users, _, service = _service(clock)
        await users.ensure("u1")
        await users.update("u1", last_usage_reset=clock.now, monthly_script_count=2)
        blocked = await service.check_usage("u1")
        clock.now = datetime(2024, 6, 1, 0, 5)
        fresh = await service.check_usage("u1")
        return blocked, fresh, await users.get("u1")

    blocked, fresh, user = asyncio.run(scenario())
    assert not blocked.can_generate
    assert fresh.used == 0 and fresh.can_generate
    assert user.last_usage_reset == datetime(2024, 6, 1, 0, 5)


def test_enterprise_usage_is_unlimited():
    clock = FrozenClock(datetime(2024, 5, 10))

    async def scenario():
        users, _, service = _service(clock)
        await users.ensure("u1")
        await service.upgrade("u1", SubscriptionTier.ENTERPRISE)
        await users.update("u1", monthly_script_count=10_000, last_usage_reset=clock.now)
        return await service.check_usage("u1")

    usage = asyncio.run(scenario())
    assert (usage.limit, usage.remaining, usage.can_generate) == (-1, -1, True)


def test_upgrade_sets_dates_and_cancel_downgrades_on_next_check():
    clock = FrozenClock(datetime(2024, 5, 10))

    async def scenario():
        users, logs, service = _service(clock)
        await users.ensure("u1")
        upgraded = await service.upgrade(
            "u1", SubscriptionTier.PRO, customer_id="cus_1", subscription_id="sub_1"
        )
        await service.cancel("u1")
        summary = await service.get_summary(await users.get("u1"))
        return upgraded, summary, await users.get("u1"), await logs.list_for_user("u1")

    upgraded, summary, stored, entries = asyncio.run(scenario())
    assert upgraded.subscription_tier == SubscriptionTier.PRO
    assert upgraded.subscription_start == datetime(2024, 5, 10)
    assert upgraded.subscription_end == datetime(2024, 6, 9)
    assert upgraded.stripe_customer_id == "cus_1"
    assert summary.effective_tier == SubscriptionTier.FREE
    assert summary.status == SubscriptionStatus.CANCELED
    assert stored.subscription_tier == SubscriptionTier.FREE
    actions = {entry.action for entry in entries}
    assert {"subscription_upgraded", "subscription_canceled"} <= actions


def test_summary_lists_styles_for_effective_tier():
    clock = FrozenClock(datetime(2024, 5, 10))

    async def scenario():
        users, _, service = _service(clock)
        user = await users.ensure("u1")
        return await service.get_summary(user)

    summary = asyncio.run(scenario())
    assert summary.tier == SubscriptionTier.FREE
    assert "PERSUASIVE" not in summary.available_styles
    assert "EDUCATIONAL" in summary.available_styles
    assert not summary.is_admin


def test_set_tier_logs_admin_override():
    clock = FrozenClock(datetime(2024, 5, 10))

    async def scenario():
        users, logs, service = _service(clock)
        await users.ensure("u1")
        user = await service.set_tier("u1", SubscriptionTier.BUSINESS, actor_id="admin")
        return user, await logs.list_for_user("u1")

    user, entries = asyncio.run(scenario())
    assert user.subscription_tier == SubscriptionTier.BUSINESS
    override = [entry for entry in entries if entry.action == "subscription_admin_override"]
    assert override and override[0].details["actor_id"] == "admin"


def test_unknown_user_raises():
    _, _, service = _service(FrozenClock(datetime(2024, 5, 10)))
    with pytest.raises(UserNotFoundError):
        asyncio.run(service.check_usage("ghost"))
    with pytest.raises(UserNotFoundError):
        asyncio.run(service.record_usage("ghost"))
