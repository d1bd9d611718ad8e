from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.videos import Video, VideoCreate
from ..models.script import ScriptModel
from ..models.transcript import TranscriptModel
from ..models.video import VideoModel


class VideosRepository(Protocol):
    async def get(self, video_id: UUID, user_id: str) -> Video | None: ...

    async def get_by_youtube_id(self, youtube_id: str, user_id: str) -> Video | None: ...

    async def upsert(self, user_id: str, payload: VideoCreate) -> Video: ...

    async def list_for_user(self, user_id: str) -> list[Video]: ...

    async def delete(self, video_id: UUID, user_id: str) -> bool: ...


class InMemoryVideosRepository:
    """Ephemeral video store; transcripts and scripts are cleaned up by their own repositories."""

    def __init__(self) -> None:
        self._videos: dict[UUID, Video] = {}

    async def get(self, video_id: UUID, user_id: str) -> Video | None:
        video = self._videos.get(video_id)
        if video and video.user_id == user_id:
            return video
        return None

    async def get_by_youtube_id(self, youtube_id: str, user_id: str) -> Video | None:
        for video in self._videos.values():
            if video.user_id == user_id and video.youtube_id == youtube_id:
                return video
        return None

    async def upsert(self, user_id: str, payload: VideoCreate) -> Video:
        now = datetime.utcnow()
        existing = await self.get_by_youtube_id(payload.youtube_id, user_id)
        if existing is not None:
            updated = existing.model_copy(
                update={**payload.model_dump(exclude_none=True), "updated_at": now}
            )
            self._videos[existing.id] = updated
            return updated
        video = Video(user_id=user_id, created_at=now, updated_at=now, **payload.model_dump())
        self._videos[video.id] = video
        return video

    async def list_for_user(self, user_id: str) -> list[Video]:
        videos = [video for video in self._videos.values() if video.user_id == user_id]
        videos.sort(key=lambda video: video.created_at, reverse=True)
        return videos

    async def delete(self, video_id: UUID, user_id: str) -> bool:
        video = await self.get(video_id, user_id)
        if video is None:
            return False
        del self._videos[video_id]
        return True


class SqlAlchemyVideosRepository:
    """Video repository backed by SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_model(self, video_id: UUID, user_id: str) -> VideoModel | None:
        result = await self._session.execute(
            select(VideoModel).where(VideoModel.id == video_id, VideoModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get(self, video_id: UUID, user_id: str) -> Video | None:
        model = await self._get_model(video_id, user_id)
        if model is None:
            return None
        return Video.model_validate(model)

    async def get_by_youtube_id(self, youtube_id: str, user_id: str) -> Video | None:
        result = await self._session.execute(
            select(VideoModel).where(
                VideoModel.youtube_id == youtube_id,
                VideoModel.user_id == user_id,
            )
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return Video.model_validate(model)

    async def upsert(self, user_id: str, payload: VideoCreate) -> Video:
        now = datetime.utcnow()
        result = await self._session.execute(
            select(VideoModel).where(
                VideoModel.youtube_id == payload.youtube_id,
                VideoModel.user_id == user_id,
            )
        )
        model = result.scalar_one_or_none()
        if model is None:
            model = VideoModel(
                user_id=user_id,
                created_at=now,
                updated_at=now,
                **payload.model_dump(),
            )
            self._session.add(model)
        else:
            for field, value in payload.model_dump(exclude_none=True).items():
                setattr(model, field, value)
            model.updated_at = now
        await self._session.commit()
        await self._session.refresh(model)
        return Video.model_validate(model)

    async def list_for_user(self, user_id: str) -> list[Video]:
        result = await self._session.execute(
            select(VideoModel)
            .where(VideoModel.user_id == user_id)
            .order_by(VideoModel.created_at.desc())
        )
        return [Video.model_validate(row) for row in result.scalars().all()]

    async def delete(self, video_id: UUID, user_id: str) -> bool:
        model = await self._get_model(video_id, user_id)
        if model is None:
            return False
        # Children are removed explicitly; SQLite does not enforce ON DELETE CASCADE by default.
        await self._session.execute(delete(ScriptModel).where(ScriptModel.video_id == video_id))
        await self._session.execute(
            delete(TranscriptModel).where(TranscriptModel.video_id == video_id)
        )
        await self._session.execute(delete(VideoModel).where(VideoModel.id == video_id))
        await self._session.commit()
        return True
