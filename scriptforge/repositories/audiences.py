from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.audiences import CustomAudience, CustomAudienceCreate
from ..models.audience import CustomAudienceModel


class AudienceExistsError(ValueError):
    """Raised when a user already has an audience with the same name."""


class AudiencesRepository(Protocol):
    async def list_for_user(self, user_id: str) -> list[CustomAudience]: ...

    async def create(self, user_id: str, payload: CustomAudienceCreate) -> CustomAudience: ...

    async def get(self, audience_id: UUID) -> CustomAudience | None: ...

    async def delete(self, audience_id: UUID) -> bool: ...


class InMemoryAudiencesRepository:
    def __init__(self) -> None:
        self._audiences: dict[UUID, CustomAudience] = {}

    async def list_for_user(self, user_id: str) -> list[CustomAudience]:
        audiences = [a for a in self._audiences.values() if a.user_id == user_id]
        audiences.sort(key=lambda audience: audience.created_at)
        return audiences

    async def create(self, user_id: str, payload: CustomAudienceCreate) -> CustomAudience:
        for audience in self._audiences.values():
            if audience.user_id == user_id and audience.name.lower() == payload.name.lower():
                raise AudienceExistsError(f"Audience '{payload.name}' already exists")
        audience = CustomAudience(
            user_id=user_id,
            name=payload.name,
            description=payload.description,
        )
        self._audiences[audience.id] = audience
        return audience

    async def get(self, audience_id: UUID) -> CustomAudience | None:
        return self._audiences.get(audience_id)

    async def delete(self, audience_id: UUID) -> bool:
        return self._audiences.pop(audience_id, None) is not None


class SqlAlchemyAudiencesRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_user(self, user_id: str) -> list[CustomAudience]:
        result = await self._session.execute(
            select(CustomAudienceModel)
            .where(CustomAudienceModel.user_id == user_id)
            .order_by(CustomAudienceModel.created_at.asc())
        )
        return [CustomAudience.model_validate(row) for row in result.scalars().all()]

    async def create(self, user_id: str, payload: CustomAudienceCreate) -> CustomAudience:
        duplicate = await self._session.execute(
            select(CustomAudienceModel.id).where(
                CustomAudienceModel.user_id == user_id,
                func.lower(CustomAudienceModel.name) == payload.name.lower(),
            )
        )
        if duplicate.first() is not None:
            raise AudienceExistsError(f"Audience '{payload.name}' already exists")
        model = CustomAudienceModel(
            user_id=user_id,
            name=payload.name,
            description=payload.description,
            created_at=datetime.utcnow(),
        )
        self._session.add(model)
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise AudienceExistsError(f"Audience '{payload.name}' already exists") from exc
        await self._session.refresh(model)
        return CustomAudience.model_validate(model)

    async def get(self, audience_id: UUID) -> CustomAudience | None:
        model = await self._session.get(CustomAudienceModel, audience_id)
        if model is None:
            return None
        return CustomAudience.model_validate(model)

    async def delete(self, audience_id: UUID) -> bool:
        result = await self._session.execute(
            delete(CustomAudienceModel).where(CustomAudienceModel.id == audience_id)
        )
        await self._session.commit()
        return bool(result.rowcount)
