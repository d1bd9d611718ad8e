from __future__ import annotations

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...domain.pagination import PaginationParams
from ...domain.scripts import (
    ScriptStatus,
    VideoDetail,
    VideoDetailResponse,
    VideoStats,
)
from ...domain.transcripts import TranscriptView
from ...domain.users import User
from ...domain.videos import VideoListResponse
from ...repositories.scripts import ScriptsRepository
from ...repositories.transcripts import TranscriptsRepository
from ...repositories.videos import VideosRepository
from ...services.pagination import paginate_sequence
from ..dependencies import (
    get_current_user,
    get_pagination_params,
    get_scripts_repository,
    get_transcripts_repository,
    get_videos_repository,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/videos", tags=["videos"])


@router.get("", response_model=VideoListResponse)
async def list_videos(
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    pagination: PaginationParams = Depends(get_pagination_params),
) -> VideoListResponse:
    videos = await videos_repo.list_for_user(current_user.id)
    page, meta = paginate_sequence(videos, pagination)
    return VideoListResponse(data=page, count=len(page), pagination=meta)


@router.get("/{video_id}", response_model=VideoDetailResponse)
async def get_video(
    video_id: UUID,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    transcripts_repo: TranscriptsRepository = Depends(get_transcripts_repository),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
) -> VideoDetailResponse:
    video = await videos_repo.get(video_id, current_user.id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    transcript = await transcripts_repo.get_for_video(video.id)
    scripts = await scripts_repo.list_for_video(video.id)
    return VideoDetailResponse(
        data=VideoDetail(
            video=video,
            transcript=TranscriptView.from_transcript(transcript) if transcript else None,
            scripts=scripts,
            stats=VideoStats(
                total_scripts=len(scripts),
                completed_scripts=sum(
                    1 for script in scripts if script.status == ScriptStatus.COMPLETED
                ),
                has_transcript=transcript is not None,
                transcript_duration=transcript.duration_seconds if transcript else 0.0,
            ),
        )
    )


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: UUID,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    transcripts_repo: TranscriptsRepository = Depends(get_transcripts_repository),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
) -> Response:
    video = await videos_repo.get(video_id, current_user.id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    await scripts_repo.delete_for_video(video.id)
    await transcripts_repo.delete_for_video(video.id)
    await videos_repo.delete(video.id, current_user.id)
    logger.info("videos.deleted", video_id=str(video.id), user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
