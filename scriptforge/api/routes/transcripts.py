from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from ...domain.transcripts import (
    TranscriptFetchRequest,
    TranscriptFetchResponse,
    TranscriptFetchResult,
    TranscriptView,
)
from ...domain.users import User
from ...domain.videos import VideoCreate
from ...repositories.transcripts import TranscriptsRepository
from ...repositories.videos import VideosRepository
from ...services.youtube import (
    YouTubeClient,
    YouTubeTranscriptError,
    construct_thumbnail_url,
    extract_video_id,
)
from ..dependencies import (
    enforce_rate_limit,
    get_current_user,
    get_transcripts_repository,
    get_videos_repository,
    get_youtube_client,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/transcripts", tags=["transcripts"])


def transcript_error_status(code: str) -> int:
    match code:
        case YouTubeTranscriptError.INVALID_URL:
            return status.HTTP_400_BAD_REQUEST
        case YouTubeTranscriptError.NO_TRANSCRIPT | YouTubeTranscriptError.PRIVATE_VIDEO:
            return status.HTTP_422_UNPROCESSABLE_ENTITY
        case YouTubeTranscriptError.VIDEO_NOT_FOUND:
            return status.HTTP_404_NOT_FOUND
        case _:
            return status.HTTP_502_BAD_GATEWAY


@router.post("/fetch", response_model=TranscriptFetchResponse)
async def fetch_transcript(
    payload: TranscriptFetchRequest,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    transcripts_repo: TranscriptsRepository = Depends(get_transcripts_repository),
    youtube: YouTubeClient = Depends(get_youtube_client),
    _: object = Depends(enforce_rate_limit("transcripts:fetch")),
) -> TranscriptFetchResponse:
    video_id = extract_video_id(payload.url)
    if video_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": YouTubeTranscriptError.INVALID_URL,
                "message": "Invalid YouTube URL. Please provide a valid YouTube video URL.",
            },
        )

    existing = await videos_repo.get_by_youtube_id(video_id, current_user.id)
    if existing is not None and not payload.force_refresh:
        stored = await transcripts_repo.get_for_video(existing.id)
        if stored is not None and stored.segments:
            logger.info("transcripts.reused", video_id=video_id, user_id=current_user.id)
            return TranscriptFetchResponse(
                data=TranscriptFetchResult(
                    video=existing,
                    transcript=TranscriptView.from_transcript(stored),
                    cached=True,
                )
            )

    try:
        result = await youtube.fetch_transcript(video_id, payload.language)
    except YouTubeTranscriptError as exc:
        logger.info(
            "transcripts.fetch_failed", video_id=video_id, code=exc.code, error=exc.message
        )
        raise HTTPException(
            status_code=transcript_error_status(exc.code),
            detail={"code": exc.code, "message": exc.message},
        ) from exc

    title = (
        existing.title
        if existing is not None and not payload.force_refresh
        else await youtube.fetch_title(video_id)
    )
    video = await videos_repo.upsert(
        current_user.id,
        VideoCreate(
            youtube_id=video_id,
            title=title,
            duration_seconds=result.total_duration,
            thumbnail_url=construct_thumbnail_url(video_id),
        ),
    )
    transcript = await transcripts_repo.upsert(
        video.id,
        segments=result.segments,
        language=result.language,
        duration_seconds=result.total_duration,
    )
    logger.info(
        "transcripts.stored",
        video_id=video_id,
        user_id=current_user.id,
        segments=len(transcript.segments),
    )
    return TranscriptFetchResponse(
        data=TranscriptFetchResult(
            video=video,
            transcript=TranscriptView.from_transcript(transcript),
            cached=False,
        )
    )
