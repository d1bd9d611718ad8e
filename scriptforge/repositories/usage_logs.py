from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.subscriptions import UsageLog
from ..models.usage import UsageLogModel


class UsageLogsRepository(Protocol):
    async def add(
        self, user_id: str, action: str, details: dict[str, Any] | None = None
    ) -> UsageLog: ...

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[UsageLog]: ...


class InMemoryUsageLogsRepository:
    def __init__(self) -> None:
        self._logs: list[UsageLog] = []

    async def add(
        self, user_id: str, action: str, details: dict[str, Any] | None = None
    ) -> UsageLog:
        log = UsageLog(
            id=len(self._logs) + 1,
            user_id=user_id,
            action=action,
            details=details or {},
        )
        self._logs.append(log)
        return log

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[UsageLog]:
        logs = [log for log in self._logs if log.user_id == user_id]
        logs.sort(key=lambda log: log.created_at, reverse=True)
        return logs[:limit]


class SqlAlchemyUsageLogsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self, user_id: str, action: str, details: dict[str, Any] | None = None
    ) -> UsageLog:
        model = UsageLogModel(
            user_id=user_id,
            action=action,
            details=details or {},
            created_at=datetime.utcnow(),
        )
        self._session.add(model)
        await self._session.commit()
        await self._session.refresh(model)
        return UsageLog.model_validate(model)

    async def list_for_user(self, user_id: str, *, limit: int = 50) -> list[UsageLog]:
        result = await self._session.execute(
            select(UsageLogModel)
            .where(UsageLogModel.user_id == user_id)
            .order_by(UsageLogModel.created_at.desc())
            .limit(limit)
        )
        return [UsageLog.model_validate(row) for row in result.scalars().all()]
