from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.transcripts import Transcript, TranscriptSegment
from ..models.transcript import TranscriptModel


class TranscriptsRepository(Protocol):
    async def get_for_video(self, video_id: UUID) -> Transcript | None: ...

    async def upsert(
        self,
        video_id: UUID,
        *,
        segments: list[TranscriptSegment],
        language: str,
        duration_seconds: float,
    ) -> Transcript: ...

    async def delete_for_video(self, video_id: UUID) -> None: ...


class InMemoryTranscriptsRepository:
    def __init__(self) -> None:
        self._transcripts: dict[UUID, Transcript] = {}

    async def get_for_video(self, video_id: UUID) -> Transcript | None:
        return self._transcripts.get(video_id)

    async def upsert(
        self,
        video_id: UUID,
        *,
        segments: list[TranscriptSegment],
        language: str,
        duration_seconds: float,
    ) -> Transcript:
        now = datetime.utcnow()
        existing = self._transcripts.get(video_id)
        if existing is not None:
            transcript = existing.model_copy(
                update={
                    "segments": list(segments),
                    "language": language,
                    "duration_seconds": duration_seconds,
                    "updated_at": now,
                }
            )
        else:
            transcript = Transcript(
                video_id=video_id,
                segments=list(segments),
                language=language,
                duration_seconds=duration_seconds,
                created_at=now,
                updated_at=now,
            )
        self._transcripts[video_id] = transcript
        return transcript

    async def delete_for_video(self, video_id: UUID) -> None:
        self._transcripts.pop(video_id, None)


class SqlAlchemyTranscriptsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_for_video(self, video_id: UUID) -> Transcript | None:
        result = await self._session.execute(
            select(TranscriptModel).where(TranscriptModel.video_id == video_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return Transcript.model_validate(model)

    async def upsert(
        self,
        video_id: UUID,
        *,
        segments: list[TranscriptSegment],
        language: str,
        duration_seconds: float,
    ) -> Transcript:
        now = datetime.utcnow()
        payload = [segment.model_dump() for segment in segments]
        result = await self._session.execute(
            select(TranscriptModel).where(TranscriptModel.video_id == video_id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            model = TranscriptModel(
                video_id=video_id,
                segments=payload,
                language=language,
                duration_seconds=duration_seconds,
                created_at=now,
                updated_at=now,
            )
            self._session.add(model)
        else:
            model.segments = payload
            model.language = language
            model.duration_seconds = duration_seconds
            model.updated_at = now
        await self._session.commit()
        await self._session.refresh(model)
        return Transcript.model_validate(model)

    async def delete_for_video(self, video_id: UUID) -> None:
        await self._session.execute(
            delete(TranscriptModel).where(TranscriptModel.video_id == video_id)
        )
        await self._session.commit()
