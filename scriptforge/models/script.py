"""SQLAlchemy model for generated scripts."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.session import Base


class ScriptModel(Base):
    __tablename__ = "scripts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    video_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transcript_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("transcripts.id", ondelete="SET NULL"), nullable=True
    )
    source_script_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    style: Mapped[str] = mapped_column(String(32), nullable=False)
    duration_min: Mapped[int] = mapped_column(Integer, nullable=False)
    audience: Mapped[str] = mapped_column(String(100), nullable=False, default="general")
    options: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    generation_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="DRAFT", index=True)
    is_priority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processing_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, nullable=False
    )

    video = relationship("VideoModel", back_populates="scripts")
