from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.scripts import Script, ScriptCreate, ScriptFilters, ScriptUpdate
from ..models.script import ScriptModel


class ScriptsRepository(Protocol):
    async def create(self, user_id: str, payload: ScriptCreate) -> Script: ...

    async def get(self, script_id: UUID) -> Script | None: ...

    async def update(self, script_id: UUID, payload: ScriptUpdate) -> Script | None: ...

    async def list_for_user(
        self, user_id: str, filters: ScriptFilters | None = None
    ) -> list[Script]: ...

    async def list_for_video(self, video_id: UUID) -> list[Script]: ...

    async def delete(self, script_id: UUID) -> bool: ...

    async def delete_for_video(self, video_id: UUID) -> None: ...


def _matches(script: Script, filters: ScriptFilters | None) -> bool:
    if filters is None:
        return True
    if filters.style is not None and script.style != filters.style:
        return False
    if filters.status is not None and script.status != filters.status:
        return False
    if filters.video_id is not None and script.video_id != filters.video_id:
        return False
    return True


class InMemoryScriptsRepository:
    def __init__(self) -> None:
        self._scripts: dict[UUID, Script] = {}

    async def create(self, user_id: str, payload: ScriptCreate) -> Script:
        now = datetime.utcnow()
        script = Script(user_id=user_id, created_at=now, updated_at=now, **payload.model_dump())
        self._scripts[script.id] = script
        return script

    async def get(self, script_id: UUID) -> Script | None:
        return self._scripts.get(script_id)

    async def update(self, script_id: UUID, payload: ScriptUpdate) -> Script | None:
        script = self._scripts.get(script_id)
        if script is None:
            return None
        updates = payload.model_dump(exclude_none=True)
        updates["updated_at"] = datetime.utcnow()
        updated = script.model_copy(update=updates)
        self._scripts[script_id] = updated
        return updated

    async def list_for_user(
        self, user_id: str, filters: ScriptFilters | None = None
    ) -> list[Script]:
        scripts = [
            script
            for script in self._scripts.values()
            if script.user_id == user_id and _matches(script, filters)
        ]
        scripts.sort(key=lambda script: script.created_at, reverse=True)
        return scripts

    async def list_for_video(self, video_id: UUID) -> list[Script]:
        scripts = [script for script in self._scripts.values() if script.video_id == video_id]
        scripts.sort(key=lambda script: script.created_at, reverse=True)
        return scripts

    async def delete(self, script_id: UUID) -> bool:
        return self._scripts.pop(script_id, None) is not None

    async def delete_for_video(self, video_id: UUID) -> None:
        for script_id in [s.id for s in self._scripts.values() if s.video_id == video_id]:
            del self._scripts[script_id]


class SqlAlchemyScriptsRepository:
    """Script repository backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user_id: str, payload: ScriptCreate) -> Script:
        now = datetime.utcnow()
        data = payload.model_dump(mode="json")
        model = ScriptModel(
            user_id=user_id,
            video_id=payload.video_id,
            transcript_id=payload.transcript_id,
            source_script_id=payload.source_script_id,
            title=payload.title,
            content="",
            style=payload.style.value,
            duration_min=payload.duration_min,
            audience=payload.audience,
            options=data["options"],
            generation_data={},
            status=payload.status.value,
            is_priority=payload.is_priority,
            has_watermark=payload.has_watermark,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        await self._session.commit()
        await self._session.refresh(model)
        return Script.model_validate(model)

    async def get(self, script_id: UUID) -> Script | None:
        model = await self._session.get(ScriptModel, script_id)
        if model is None:
            return None
        return Script.model_validate(model)

    async def update(self, script_id: UUID, payload: ScriptUpdate) -> Script | None:
        model = await self._session.get(ScriptModel, script_id)
        if model is None:
            return None
        updates = payload.model_dump(mode="json", exclude_none=True)
        for field, value in updates.items():
            setattr(model, field, value)
        model.updated_at = datetime.utcnow()
        await self._session.commit()
        await self._session.refresh(model)
        return Script.model_validate(model)

    async def list_for_user(
        self, user_id: str, filters: ScriptFilters | None = None
    ) -> list[Script]:
        query = select(ScriptModel).where(ScriptModel.user_id == user_id)
        if filters is not None:
            if filters.style is not None:
                query = query.where(ScriptModel.style == filters.style.value)
            if filters.status is not None:
                query = query.where(ScriptModel.status == filters.status.value)
            if filters.video_id is not None:
                query = query.where(ScriptModel.video_id == filters.video_id)
        result = await self._session.execute(query.order_by(ScriptModel.created_at.desc()))
        return [Script.model_validate(row) for row in result.scalars().all()]

    async def list_for_video(self, video_id: UUID) -> list[Script]:
        result = await self._session.execute(
            select(ScriptModel)
            .where(ScriptModel.video_id == video_id)
            .order_by(ScriptModel.created_at.desc())
        )
        return [Script.model_validate(row) for row in result.scalars().all()]

    async def delete(self, script_id: UUID) -> bool:
        result = await self._session.execute(
            delete(ScriptModel).where(ScriptModel.id == script_id)
        )
        await self._session.commit()
        return bool(result.rowcount)

    async def delete_for_video(self, video_id: UUID) -> None:
        await self._session.execute(delete(ScriptModel).where(ScriptModel.video_id == video_id))
        await self._session.commit()
