from __future__ import annotations

from time import perf_counter
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...core.subscriptions import (
    apply_watermark,
    get_effective_tier,
    has_advanced_style_access,
    has_priority_processing,
    minimum_tier_for,
    should_have_watermark,
)
from ...domain.pagination import PaginationParams
from ...domain.scripts import (
    AIMetrics,
    FinalRemixRequest,
    FinalRemixResponse,
    FinalRemixResult,
    GeneratedScriptResponse,
    GeneratedScriptResult,
    RemixVariationsRequest,
    RemixVariationsResponse,
    RemixVariationsResult,
    Script,
    ScriptCreate,
    ScriptFilters,
    ScriptGenerateRequest,
    ScriptListResponse,
    ScriptResponse,
    ScriptStatus,
    ScriptStyle,
    ScriptUpdate,
    SubscriptionContext,
    TitlePackRequest,
    TitlePackResponse,
    TitlePackResult,
)
from ...domain.subscriptions import FeatureLockedPayload
from ...domain.users import User
from ...repositories.scripts import ScriptsRepository
from ...repositories.transcripts import TranscriptsRepository
from ...repositories.videos import VideosRepository
from ...services.pagination import paginate_sequence
from ...services.script_generator import ScriptGenerationError, ScriptGenerator
from ...services.subscriptions import SubscriptionService
from ..dependencies import (
    AI_GENERATION_SCOPE,
    enforce_rate_limit,
    ensure_feature,
    ensure_usage_available,
    get_current_user,
    get_pagination_params,
    get_script_generator,
    get_scripts_repository,
    get_subscription_service,
    get_transcripts_repository,
    get_videos_repository,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/scripts", tags=["scripts"])


def generation_error_status(code: str) -> int:
    match code:
        case ScriptGenerationError.INVALID_INPUT:
            return status.HTTP_400_BAD_REQUEST
        case ScriptGenerationError.TOKEN_LIMIT:
            return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        case ScriptGenerationError.RATE_LIMIT:
            return status.HTTP_429_TOO_MANY_REQUESTS
        case _:
            return status.HTTP_502_BAD_GATEWAY


def _elapsed_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)


def _ensure_option_features(user: User, payload: ScriptGenerateRequest) -> None:
    tier = get_effective_tier(user)
    if not has_advanced_style_access(tier, payload.style):
        locked = FeatureLockedPayload(
            message=f"The {payload.style.value} style requires a "
            f"{minimum_tier_for('advanced_styles').value.title()} subscription",
            feature="advanced_styles",
            required_tier=minimum_tier_for("advanced_styles"),
            current_tier=tier,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=locked.model_dump(mode="json"),
        )
    if payload.generate_hooks:
        ensure_feature(user, "hook_generation", "Hook generation")
    if payload.generate_title_pack or payload.generate_thumbnail_premises:
        ensure_feature(user, "title_and_thumbnail_pack", "Title and thumbnail pack")
    if payload.cta is not None:
        ensure_feature(user, "cta_integration", "CTA integration")
    if payload.relink is not None:
        ensure_feature(user, "relink_outros", "Relink outros")
    if payload.key_points:
        ensure_feature(user, "key_points_integration", "Key points integration")
    if payload.custom_instructions:
        ensure_feature(user, "custom_instructions", "Custom instructions")


async def _mark_failed(
    scripts_repo: ScriptsRepository, script_id: UUID, exc: ScriptGenerationError, started: float
) -> HTTPException:
    await scripts_repo.update(
        script_id,
        ScriptUpdate(
            status=ScriptStatus.ERROR,
            content=f"Generation failed: {exc.message}",
            generation_data={"error": {"code": exc.code, "message": exc.message}},
            processing_time_ms=_elapsed_ms(started),
        ),
    )
    logger.warning(
        "scripts.generation_failed", script_id=str(script_id), code=exc.code, error=exc.message
    )
    return HTTPException(
        status_code=generation_error_status(exc.code),
        detail={"code": exc.code, "message": exc.message},
    )


async def _owned_completed_script(
    scripts_repo: ScriptsRepository, script_id: UUID, user: User
) -> Script:
    script = await scripts_repo.get(script_id)
    if script is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Script not found")
    if script.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only remix your own scripts",
        )
    if script.status != ScriptStatus.COMPLETED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Can only remix completed scripts",
        )
    return script


@router.post(
    "/generate",
    response_model=GeneratedScriptResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_script(
    payload: ScriptGenerateRequest,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    transcripts_repo: TranscriptsRepository = Depends(get_transcripts_repository),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    generator: ScriptGenerator = Depends(get_script_generator),
    _: object = Depends(enforce_rate_limit(AI_GENERATION_SCOPE)),
) -> GeneratedScriptResponse:
    started = perf_counter()
    await ensure_usage_available(subscriptions, current_user)
    _ensure_option_features(current_user, payload)

    video = await videos_repo.get(payload.video_id, current_user.id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    transcript = await transcripts_repo.get_for_video(video.id)
    if transcript is None or not transcript.segments:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No transcript available for this video",
        )

    tier = get_effective_tier(current_user)
    options = payload.to_options()
    script = await scripts_repo.create(
        current_user.id,
        ScriptCreate(
            video_id=video.id,
            transcript_id=transcript.id,
            title=f"Enhanced Script for {video.title}"[:500],
            style=options.style,
            duration_min=options.duration_min,
            audience=options.audience,
            options=options.model_dump(mode="json"),
            is_priority=has_priority_processing(tier),
            has_watermark=should_have_watermark(tier),
        ),
    )

    try:
        generated = await generator.generate_script(transcript.full_text, video.title, options)
    except ScriptGenerationError as exc:
        raise await _mark_failed(scripts_repo, script.id, exc, started) from exc

    content = apply_watermark(generated.content) if script.has_watermark else generated.content
    processing_time = _elapsed_ms(started)
    script = await scripts_repo.update(
        script.id,
        ScriptUpdate(
            title=generated.title or script.title,
            content=content,
            status=ScriptStatus.COMPLETED,
            generation_data=generated.model_dump(mode="json"),
            processing_time_ms=processing_time,
        ),
    )
    await subscriptions.record_usage(
        current_user.id,
        "script_generated",
        {
            "script_id": str(script.id),
            "style": options.style.value,
            "duration_min": options.duration_min,
            "processing_time_ms": processing_time,
        },
    )
    usage = await subscriptions.check_usage(current_user.id)
    logger.info(
        "scripts.generated",
        script_id=str(script.id),
        user_id=current_user.id,
        style=options.style.value,
        processing_time_ms=processing_time,
    )
    return GeneratedScriptResponse(
        data=GeneratedScriptResult(
            script=script,
            sections=generated.sections,
            hooks=generated.hooks,
            title_pack=generated.title_pack,
            thumbnail_premises=generated.thumbnail_premises,
            click_confirmation=generated.click_confirmation,
            payout_moments=generated.payout_moments,
            ai_metrics=AIMetrics(
                generation_time_ms=processing_time,
                word_count=generated.word_count,
                estimated_duration=generated.estimated_duration,
                sections=len(generated.sections),
            ),
            subscription=SubscriptionContext(
                tier=tier, usage=usage, has_watermark=script.has_watermark
            ),
        )
    )


@router.post("/title-pack", response_model=TitlePackResponse)
async def generate_title_pack(
    payload: TitlePackRequest,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    transcripts_repo: TranscriptsRepository = Depends(get_transcripts_repository),
    generator: ScriptGenerator = Depends(get_script_generator),
    _: object = Depends(enforce_rate_limit(AI_GENERATION_SCOPE)),
) -> TitlePackResponse:
    ensure_feature(current_user, "title_and_thumbnail_pack", "Title and thumbnail pack")
    video = await videos_repo.get(payload.video_id, current_user.id)
    if video is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Video not found")
    transcript = await transcripts_repo.get_for_video(video.id)
    if transcript is None or not transcript.segments:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No transcript available for this video",
        )
    try:
        pack = await generator.generate_title_pack(
            transcript.full_text, video.title, payload.topic, payload.niche
        )
    except ScriptGenerationError as exc:
        raise HTTPException(
            status_code=generation_error_status(exc.code),
            detail={"code": exc.code, "message": exc.message},
        ) from exc
    return TitlePackResponse(
        data=TitlePackResult(
            video_id=video.id,
            video_title=video.title,
            title_pack=pack.title_pack,
            thumbnail_premises=pack.thumbnail_premises,
        )
    )


@router.post("/remix-variations", response_model=RemixVariationsResponse)
async def generate_remix_variations(
    payload: RemixVariationsRequest,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    generator: ScriptGenerator = Depends(get_script_generator),
    _: object = Depends(enforce_rate_limit(AI_GENERATION_SCOPE)),
) -> RemixVariationsResponse:
    started = perf_counter()
    await ensure_usage_available(subscriptions, current_user)
    ensure_feature(current_user, "script_remixing", "Script remixing")
    script = await _owned_completed_script(scripts_repo, payload.script_id, current_user)
    video = await videos_repo.get(script.video_id, current_user.id)
    video_title = video.title if video is not None else script.title

    try:
        variations = await generator.generate_remix_variations(
            script,
            video_title,
            payload.target_audience,
            payload.selected_hook,
            payload.custom_instructions,
        )
    except ScriptGenerationError as exc:
        raise HTTPException(
            status_code=generation_error_status(exc.code),
            detail={"code": exc.code, "message": exc.message},
        ) from exc

    processing_time = _elapsed_ms(started)
    await subscriptions.record_usage(
        current_user.id,
        "remix_variations_generated",
        {"script_id": str(script.id), "processing_time_ms": processing_time},
    )
    usage = await subscriptions.check_usage(current_user.id)
    return RemixVariationsResponse(
        data=RemixVariationsResult(
            script_id=script.id,
            original_title=script.title,
            video_title=video_title,
            variations=variations,
            ai_metrics=AIMetrics(generation_time_ms=processing_time),
            subscription=SubscriptionContext(
                tier=get_effective_tier(current_user), usage=usage
            ),
        )
    )


@router.post(
    "/final-remix",
    response_model=FinalRemixResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_final_remix(
    payload: FinalRemixRequest,
    current_user: User = Depends(get_current_user),
    videos_repo: VideosRepository = Depends(get_videos_repository),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    generator: ScriptGenerator = Depends(get_script_generator),
    _: object = Depends(enforce_rate_limit(AI_GENERATION_SCOPE)),
) -> FinalRemixResponse:
    started = perf_counter()
    await ensure_usage_available(subscriptions, current_user)
    ensure_feature(current_user, "script_remixing", "Script remixing")
    original = await _owned_completed_script(scripts_repo, payload.script_id, current_user)
    video = await videos_repo.get(original.video_id, current_user.id)
    selections = payload.selections
    tier = get_effective_tier(current_user)

    remix = await scripts_repo.create(
        current_user.id,
        ScriptCreate(
            video_id=original.video_id,
            transcript_id=original.transcript_id,
            source_script_id=original.id,
            title=selections.title.title,
            style=original.style,
            duration_min=original.duration_min,
            audience=selections.target_audience,
            options={"remix": selections.model_dump(mode="json")},
            is_priority=has_priority_processing(tier),
            has_watermark=should_have_watermark(tier),
        ),
    )

    try:
        generated = await generator.generate_final_remix(
            original, selections, video.title if video is not None else None
        )
    except ScriptGenerationError as exc:
        raise await _mark_failed(scripts_repo, remix.id, exc, started) from exc

    content = apply_watermark(generated.content) if remix.has_watermark else generated.content
    processing_time = _elapsed_ms(started)
    remix = await scripts_repo.update(
        remix.id,
        ScriptUpdate(
            title=generated.title or selections.title.title,
            content=content,
            status=ScriptStatus.COMPLETED,
            generation_data=generated.model_dump(mode="json"),
            processing_time_ms=processing_time,
        ),
    )
    await subscriptions.record_usage(
        current_user.id,
        "final_remix_generated",
        {
            "script_id": str(remix.id),
            "original_script_id": str(original.id),
            "processing_time_ms": processing_time,
        },
    )
    usage = await subscriptions.check_usage(current_user.id)
    logger.info(
        "scripts.remixed",
        script_id=str(remix.id),
        original_script_id=str(original.id),
        user_id=current_user.id,
    )
    return FinalRemixResponse(
        data=FinalRemixResult(
            script=remix,
            original_script_id=original.id,
            selections=selections,
            ai_metrics=AIMetrics(
                generation_time_ms=processing_time,
                word_count=generated.word_count,
                estimated_duration=generated.estimated_duration,
                sections=len(generated.sections),
            ),
            subscription=SubscriptionContext(
                tier=tier, usage=usage, has_watermark=remix.has_watermark
            ),
        )
    )


@router.get("", response_model=ScriptListResponse)
async def list_scripts(
    style: ScriptStyle | None = Query(default=None),
    script_status: ScriptStatus | None = Query(default=None, alias="status"),
    video_id: UUID | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
    pagination: PaginationParams = Depends(get_pagination_params),
) -> ScriptListResponse:
    scripts = await scripts_repo.list_for_user(
        current_user.id,
        ScriptFilters(style=style, status=script_status, video_id=video_id),
    )
    page, meta = paginate_sequence(scripts, pagination)
    return ScriptListResponse(data=page, count=len(page), pagination=meta)


@router.get("/{script_id}", response_model=ScriptResponse)
async def get_script(
    script_id: UUID,
    current_user: User = Depends(get_current_user),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
) -> ScriptResponse:
    script = await scripts_repo.get(script_id)
    if script is None or script.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Script not found")
    return ScriptResponse(data=script)


@router.delete("/{script_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_script(
    script_id: UUID,
    current_user: User = Depends(get_current_user),
    scripts_repo: ScriptsRepository = Depends(get_scripts_repository),
) -> Response:
    script = await scripts_repo.get(script_id)
    if script is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Script not found")
    if script.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own scripts",
        )
    await scripts_repo.delete(script_id)
    logger.info("scripts.deleted", script_id=str(script_id), user_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
