"""Fixed-window request counters keyed by scope and caller."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timedelta
from time import monotonic

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.rate_limits import RateLimitStatus
from ..models.rate_limit import RateLimitCounterModel


class RateLimitRepository(ABC):
    @abstractmethod
    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        """Count one request for ``key`` under ``scope`` and report what is left."""


class InMemoryRateLimitRepository(RateLimitRepository):
    """Sliding log of request timestamps per (scope, key)."""

    def __init__(self) -> None:
        self._buckets: defaultdict[tuple[str, str], list[float]] = defaultdict(list)

    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        now = monotonic()
        entries = self._buckets[(scope, key)]
        cutoff = now - window_seconds
        entries[:] = [stamp for stamp in entries if stamp > cutoff]

        if len(entries) >= limit:
            retry_after = int(max(entries[0] + window_seconds - now, 0)) + 1
            return RateLimitStatus(
                allowed=False, limit=limit, remaining=0, retry_after_seconds=retry_after
            )

        entries.append(now)
        return RateLimitStatus(
            allowed=True,
            limit=limit,
            remaining=max(limit - len(entries), 0),
            retry_after_seconds=0,
        )


class SqlAlchemyRateLimitRepository(RateLimitRepository):
    """One counter row per (scope, identity), reset when its window expires."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def hit(
        self,
        *,
        scope: str,
        key: str,
        limit: int,
        window_seconds: int,
    ) -> RateLimitStatus:
        now = datetime.utcnow()
        result = await self._session.execute(
            select(RateLimitCounterModel).where(
                RateLimitCounterModel.scope == scope,
                RateLimitCounterModel.identity == key,
            )
        )
        model = result.scalar_one_or_none()
        if model is None:
            self._session.add(
                RateLimitCounterModel(scope=scope, identity=key, window_started_at=now, count=1)
            )
            try:
                await self._session.commit()
            except IntegrityError:
                await self._session.rollback()
                return await self.hit(
                    scope=scope, key=key, limit=limit, window_seconds=window_seconds
                )
            return RateLimitStatus(
                allowed=True, limit=limit, remaining=limit - 1, retry_after_seconds=0
            )

        if model.window_started_at <= now - timedelta(seconds=window_seconds):
            model.window_started_at = now
            model.count = 1
            await self._session.commit()
            return RateLimitStatus(
                allowed=True, limit=limit, remaining=limit - 1, retry_after_seconds=0
            )

        if model.count >= limit:
            elapsed = (now - model.window_started_at).total_seconds()
            return RateLimitStatus(
                allowed=False,
                limit=limit,
                remaining=0,
                retry_after_seconds=max(int(window_seconds - elapsed), 0),
            )

        model.count += 1
        await self._session.commit()
        return RateLimitStatus(
            allowed=True,
            limit=limit,
            remaining=max(limit - model.count, 0),
            retry_after_seconds=0,
        )
