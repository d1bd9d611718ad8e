"""Filtering over the packaged catalogue of opening hooks."""

from __future__ import annotations

import random
from collections import Counter
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Sequence

import structlog
from pydantic import TypeAdapter

from ..core.config import get_settings
from ..domain.hooks import HookAudience, HookFilters, HookRow, HookStats
from ..domain.scripts import ScriptStyle, Tone

logger = structlog.get_logger()

MAX_HOOK_LIMIT = 50
_rows_adapter = TypeAdapter(list[HookRow])


def validate_hook_filters(
    *,
    style: str | None = None,
    tone: str | None = None,
    audience: str | None = None,
    limit: int | None = None,
) -> list[str]:
    """Return human readable problems with raw query values; empty when valid."""

    errors: list[str] = []
    valid_styles = [item.value for item in ScriptStyle]
    valid_tones = [item.value for item in Tone]
    valid_audiences = [item.value for item in HookAudience]
    if style and style not in valid_styles:
        errors.append(f"Invalid style: {style}. Valid options: {', '.join(valid_styles)}")
    if tone and tone not in valid_tones:
        errors.append(f"Invalid tone: {tone}. Valid options: {', '.join(valid_tones)}")
    if audience and audience not in valid_audiences:
        errors.append(
            f"Invalid audience: {audience}. Valid options: {', '.join(valid_audiences)}"
        )
    if limit is not None and not 1 <= limit <= MAX_HOOK_LIMIT:
        errors.append(f"Limit must be between 1 and {MAX_HOOK_LIMIT}")
    return errors


class HookCatalog:
    """Immutable list of hook rows with tag filters."""

    def __init__(self, rows: Sequence[HookRow], *, rng: random.Random | None = None) -> None:
        self._rows = tuple(rows)
        self._rng = rng or random.Random()

    @classmethod
    def from_json(cls, raw: str | bytes) -> "HookCatalog":
        return cls(_rows_adapter.validate_json(raw))

    def __len__(self) -> int:
        return len(self._rows)

    def _matching(self, filters: HookFilters) -> list[HookRow]:
        return [
            row
            for row in self._rows
            if (filters.style is None or filters.style in row.styles)
            and (filters.tone is None or filters.tone in row.tones)
            and (filters.audience is None or filters.audience in row.audiences)
        ]

    def get_hooks(self, filters: HookFilters | None = None) -> list[HookRow]:
        """Rows carrying every requested tag, in catalogue order, capped at ``limit``."""

        filters = filters or HookFilters()
        return self._matching(filters)[: filters.limit]

    def random_hook(self, filters: HookFilters | None = None) -> HookRow | None:
        matches = self._matching(filters or HookFilters())
        if not matches:
            return None
        return self._rng.choice(matches)

    def stats(self) -> HookStats:
        styles: Counter[str] = Counter()
        tones: Counter[str] = Counter()
        audiences: Counter[str] = Counter()
        for row in self._rows:
            styles.update(style.value for style in row.styles)
            tones.update(tone.value for tone in row.tones)
            audiences.update(audience.value for audience in row.audiences)
        return HookStats(
            total_hooks=len(self._rows),
            style_stats=dict(styles),
            tone_stats=dict(tones),
            audience_stats=dict(audiences),
        )


@lru_cache
def load_hook_catalog() -> HookCatalog:
    """Load the catalogue once per process, honouring HOOKS_DATASET_PATH."""

    override = get_settings().hooks_dataset_path
    if override:
        raw = Path(override).read_text(encoding="utf-8")
        source = override
    else:
        raw = resources.files("scriptforge").joinpath("data/hooks.json").read_text(
            encoding="utf-8"
        )
        source = "package:data/hooks.json"
    catalog = HookCatalog.from_json(raw)
    logger.info("hooks.catalog_loaded", source=source, total=len(catalog))
    return catalog

