from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.users import User
from ..models.user import UserModel


class StripeCustomerConflictError(ValueError):
    """Raised when a Stripe customer id already belongs to a different user."""


class UsersRepository(Protocol):
    async def get(self, user_id: str) -> User | None: ...

    async def get_by_stripe_customer_id(self, customer_id: str) -> User | None: ...

    async def ensure(
        self, user_id: str, *, email: str | None = None, name: str | None = None
    ) -> User: ...

    async def update(self, user_id: str, **changes: Any) -> User | None: ...

    async def increment_usage(self, user_id: str) -> User | None: ...


class InMemoryUsersRepository:
    """Dictionary-backed user store for tests and local experiments."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    async def get(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    async def get_by_stripe_customer_id(self, customer_id: str) -> User | None:
        for user in self._users.values():
            if user.stripe_customer_id == customer_id:
                return user
        return None

    async def ensure(
        self, user_id: str, *, email: str | None = None, name: str | None = None
    ) -> User:
        existing = self._users.get(user_id)
        if existing is None:
            user = User(id=user_id, email=email, name=name)
            self._users[user_id] = user
            return user
        updates: dict[str, object] = {}
        if email and email != existing.email:
            updates["email"] = email
        if name and name != existing.name:
            updates["name"] = name
        if not updates:
            return existing
        updates["updated_at"] = datetime.utcnow()
        updated = existing.model_copy(update=updates)
        self._users[user_id] = updated
        return updated

    async def update(self, user_id: str, **changes: Any) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        if "stripe_customer_id" in changes and changes["stripe_customer_id"] is not None:
            owner = await self.get_by_stripe_customer_id(changes["stripe_customer_id"])
            if owner is not None and owner.id != user_id:
                raise StripeCustomerConflictError(
                    "Stripe customer is already linked to another user"
                )
        updated = user.model_copy(update={**changes, "updated_at": datetime.utcnow()})
        self._users[user_id] = updated
        return updated

    async def increment_usage(self, user_id: str) -> User | None:
        user = self._users.get(user_id)
        if user is None:
            return None
        return await self.update(
            user_id,
            monthly_script_count=user.monthly_script_count + 1,
            total_script_count=user.total_script_count + 1,
        )


class SqlAlchemyUsersRepository:
    """User repository backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> User | None:
        model = await self._session.get(UserModel, user_id)
        if model is None:
            return None
        return self._to_domain(model)

    async def get_by_stripe_customer_id(self, customer_id: str) -> User | None:
        result = await self._session.execute(
            select(UserModel).where(UserModel.stripe_customer_id == customer_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return self._to_domain(model)

    async def ensure(
        self, user_id: str, *, email: str | None = None, name: str | None = None
    ) -> User:
        model = await self._session.get(UserModel, user_id)
        now = datetime.utcnow()
        if model is None:
            model = UserModel(
                id=user_id,
                email=email,
                name=name,
                last_usage_reset=now,
                created_at=now,
                updated_at=now,
            )
            self._session.add(model)
            try:
                await self._session.commit()
            except IntegrityError:
                # A concurrent request created the row first.
                await self._session.rollback()
                model = await self._session.get(UserModel, user_id)
                if model is None:
                    raise
            return self._to_domain(model)

        changed = False
        if email and email != model.email:
            model.email = email
            changed = True
        if name and name != model.name:
            model.name = name
            changed = True
        if changed:
            model.updated_at = now
            await self._session.commit()
        return self._to_domain(model)

    async def update(self, user_id: str, **changes: Any) -> User | None:
        model = await self._session.get(UserModel, user_id)
        if model is None:
            return None
        for field, value in changes.items():
            if isinstance(value, Enum):
                value = value.value
            setattr(model, field, value)
        model.updated_at = datetime.utcnow()
        try:
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise StripeCustomerConflictError(
                "Stripe customer is already linked to another user"
            ) from exc
        await self._session.refresh(model)
        return self._to_domain(model)

    async def increment_usage(self, user_id: str) -> User | None:
        model = await self._session.get(UserModel, user_id)
        if model is None:
            return None
        model.monthly_script_count = UserModel.monthly_script_count + 1
        model.total_script_count = UserModel.total_script_count + 1
        model.updated_at = datetime.utcnow()
        await self._session.commit()
        await self._session.refresh(model)
        return self._to_domain(model)

    @staticmethod
    def _to_domain(model: UserModel) -> User:
        return User.model_validate(model)
