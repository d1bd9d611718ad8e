"""
Property-based tests for the hooks catalogue filters and statistics.
"""

import random

import pytest
from hypothesis import given, settings, strategies as st

from scriptforge.domain.hooks import HookAudience, HookFilters, HookRow
from scriptforge.domain.scripts import ScriptStyle, Tone
from scriptforge.services.hooks import HookCatalog, load_hook_catalog, validate_hook_filters

row_strategy = st.builds(
    HookRow,
    id=st.uuids().map(lambda value: f"hook_{value.hex[:8]}"),
    hook=st.text(min_size=1, max_size=80),
    styles=st.lists(st.sampled_from(list(ScriptStyle)), min_size=1, max_size=4, unique=True),
    tones=st.lists(st.sampled_from(list(Tone)), min_size=1, max_size=4, unique=True),
    audiences=st.lists(st.sampled_from(list(HookAudience)), min_size=1, max_size=5, unique=True),
)

filters_strategy = st.builds(
    HookFilters,
    style=st.none() | st.sampled_from(list(ScriptStyle)),
    tone=st.none() | st.sampled_from(list(Tone)),
    audience=st.none() | st.sampled_from(list(HookAudience)),
    limit=st.integers(min_value=1, max_value=50),
)


@settings(max_examples=100)
@given(rows=st.lists(row_strategy, max_size=30), filters=filters_strategy)
def test_get_hooks_returns_only_rows_matching_every_filter(rows, filters):
    """
    Property: each returned row carries every requested tag, rows keep
    catalogue order and the result never exceeds the limit.
    """
    result = HookCatalog(rows).get_hooks(filters)

    assert len(result) <= filters.limit
    for row in result:
        assert filters.style is None or filters.style in row.styles
        assert filters.tone is None or filters.tone in row.tones
        assert filters.audience is None or filters.audience in row.audiences

    positions = [rows.index(row) for row in result]
    assert positions == sorted(positions)


@settings(max_examples=100)
@given(rows=st.lists(row_strategy, max_size=30), filters=filters_strategy)
def test_get_hooks_does_not_drop_matches_below_the_limit(rows, filters):
    """
    Property: the result is exactly the first ``limit`` matching rows.
    """
    expected = [
        row
        for row in rows
        if (filters.style is None or filters.style in row.styles)
        and (filters.tone is None or filters.tone in row.tones)
        and (filters.audience is None or filters.audience in row.audiences)
    ][: filters.limit]
    assert HookCatalog(rows).get_hooks(filters) == expected


@settings(max_examples=100)
@given(rows=st.lists(row_strategy, min_size=1, max_size=30), filters=filters_strategy)
def test_random_hook_is_drawn_from_matches(rows, filters):
    catalog = HookCatalog(rows, rng=random.Random(7))
    matches = catalog.get_hooks(filters.model_copy(update={"limit": 50}))
    picked = catalog.random_hook(filters)
    if not matches:
        assert picked is None
    else:
        assert picked in rows
        assert filters.style is None or filters.style in picked.styles


@settings(max_examples=100)
@given(rows=st.lists(row_strategy, max_size=30))
def test_stats_count_every_tag_occurrence(rows):
    """
    Property: per-tag counters add up to the number of tag assignments.
    """
    stats = HookCatalog(rows).stats()
    assert stats.total_hooks == len(rows)
    assert sum(stats.style_stats.values()) == sum(len(row.styles) for row in rows)
    assert sum(stats.tone_stats.values()) == sum(len(row.tones) for row in rows)
    assert sum(stats.audience_stats.values()) == sum(len(row.audiences) for row in rows)


def test_validate_hook_filters_accepts_known_values():
    assert validate_hook_filters(style="EDUCATIONAL", tone="casual", audience="students", limit=10) == []
    assert validate_hook_filters() == []


@pytest.mark.parametrize(
    ("kwargs", "fragment"),
    [
        ({"style": "educational"}, "Invalid style: educational"),
        ({"tone": "angry"}, "Invalid tone: angry"),
        ({"audience": "aliens"}, "Invalid audience: aliens"),
        ({"limit": 0}, "Limit must be between 1 and 50"),
        ({"limit": 51}, "Limit must be between 1 and 50"),
    ],
)
def test_validate_hook_filters_reports_each_problem(kwargs, fragment):
    errors = validate_hook_filters(**kwargs)
    assert len(errors) == 1
    assert errors[0].startswith(fragment)


def test_packaged_catalogue_loads_and_has_unique_ids():
    catalog = load_hook_catalog()
    rows = catalog.get_hooks(HookFilters(limit=50))
    assert len(catalog) >= 30
    assert len({row.id for row in rows}) == len(rows)


def test_packaged_catalogue_narrow_filter():
    catalog = load_hook_catalog()
    rows = catalog.get_hooks(
        HookFilters(style=ScriptStyle.EDUCATIONAL, tone=Tone.CASUAL, audience=HookAudience.BEGINNERS)
    )
    assert rows
    assert all(HookAudience.BEGINNERS in row.audiences for row in rows)
