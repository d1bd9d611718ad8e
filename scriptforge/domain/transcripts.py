from __future__ import annotations

from datetime import datetime
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from .videos import Video

YOUTUBE_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtu.be",
    "www.youtu.be",
}


class TranscriptSegment(BaseModel):
    text: str
    offset: float = Field(ge=0, description="Start of the caption in seconds")
    duration: float = Field(ge=0, description="Caption length in seconds")
    lang: Optional[str] = None


class Transcript(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    video_id: UUID
    segments: list[TranscriptSegment] = Field(default_factory=list)
    language: str = "en"
    duration_seconds: float = Field(default=0.0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True

    @property
    def full_text(self) -> str:
        return " ".join(" ".join(segment.text for segment in self.segments).split())


class TranscriptFetchRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    language: Optional[str] = Field(default=None, min_length=2, max_length=16)
    force_refresh: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"url": "https://www.youtube.com/watch?v=dQw4w9WgXcQ", "language": "en"}
            ]
        }
    }

    @field_validator("url")
    @classmethod
    def _require_youtube_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("URL must use http or https")
        if (parsed.hostname or "").lower() not in YOUTUBE_HOSTS:
            raise ValueError("URL must point to youtube.com or youtu.be")
        return value


class TranscriptView(BaseModel):
    """Transcript as returned to clients, with the joined text."""

    id: UUID
    video_id: UUID
    segments: list[TranscriptSegment]
    language: str
    duration_seconds: float
    full_text: str
    segment_count: int

    @classmethod
    def from_transcript(cls, transcript: Transcript) -> "TranscriptView":
        return cls(
            id=transcript.id,
            video_id=transcript.video_id,
            segments=transcript.segments,
            language=transcript.language,
            duration_seconds=transcript.duration_seconds,
            full_text=transcript.full_text,
            segment_count=len(transcript.segments),
        )


class TranscriptFetchResult(BaseModel):
    video: Video
    transcript: TranscriptView
    cached: bool = Field(description="True when the stored transcript was reused")


class TranscriptFetchResponse(BaseModel):
    data: TranscriptFetchResult
