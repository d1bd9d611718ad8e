"""User ORM model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db import Base


class UserModel(Base):
    """Accounts keyed by the identity provider subject, with subscription state."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    subscription_tier: Mapped[str] = mapped_column(String(32), nullable=False, default="FREE")
    subscription_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="ACTIVE"
    )
    subscription_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    subscription_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    stripe_customer_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True, index=True
    )
    stripe_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    monthly_script_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_script_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_usage_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    videos = relationship("VideoModel", back_populates="user", cascade="all, delete-orphan")
