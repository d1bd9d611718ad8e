from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Optional
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .pagination import PaginationMeta
from .subscriptions import SubscriptionTier, UsageInfo
from .transcripts import TranscriptView
from .videos import Video


class ScriptStyle(str, Enum):
    PROFESSIONAL = "PROFESSIONAL"
    CASUAL = "CASUAL"
    EDUCATIONAL = "EDUCATIONAL"
    ENTERTAINING = "ENTERTAINING"
    TECHNICAL = "TECHNICAL"
    STORYTELLING = "STORYTELLING"
    PERSUASIVE = "PERSUASIVE"
    NARRATIVE = "NARRATIVE"
    ACADEMIC = "ACADEMIC"


ADVANCED_STYLES = frozenset(
    {ScriptStyle.PERSUASIVE, ScriptStyle.NARRATIVE, ScriptStyle.ACADEMIC}
)


class ScriptStatus(str, Enum):
    DRAFT = "DRAFT"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class Tone(str, Enum):
    FORMAL = "formal"
    CASUAL = "casual"
    ENTHUSIASTIC = "enthusiastic"
    INFORMATIVE = "informative"


class ScriptMode(str, Enum):
    BULLET = "bullet"
    WORD = "word"
    HYBRID = "hybrid"


class CtaType(str, Enum):
    FREE_RESOURCE = "free_resource"
    NEWSLETTER = "newsletter"
    SPONSOR = "sponsor"
    SUBSCRIBE = "subscribe"
    CUSTOM = "custom"


class HookType(str, Enum):
    QUESTION = "question"
    CONTEXT = "context"
    BOLD_STATEMENT = "bold_statement"
    CURIOSITY_GAP = "curiosity_gap"


class ContrastType(str, Enum):
    BEFORE_AFTER = "before_after"
    A_B_COMPARISON = "a_b_comparison"
    PROBLEM_SOLUTION = "problem_solution"
    CURIOSITY = "curiosity"


class PayoffType(str, Enum):
    UNEXPECTED_REVEAL = "unexpected_reveal"
    ACTION_PLAN = "action_plan"
    TRANSFORMATION_STORY = "transformation_story"
    CLIFFHANGER = "cliffhanger"
    CALL_TO_ACTION = "call_to_action"


class CallToAction(BaseModel):
    type: CtaType
    label: str = Field(..., min_length=1, max_length=200)
    url: Optional[str] = Field(default=None, max_length=2048)


class Relink(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    title: Optional[str] = Field(default=None, max_length=200)


class ScriptOptions(BaseModel):
    """Everything the generator needs besides the transcript and title."""

    style: ScriptStyle = ScriptStyle.PROFESSIONAL
    duration_min: int = Field(default=5, ge=1, le=60)
    audience: str = Field(default="general", min_length=1, max_length=100)
    tone: Optional[Tone] = None
    mode: ScriptMode = ScriptMode.HYBRID
    include_intro: bool = True
    include_conclusion: bool = True
    key_points: list[str] = Field(default_factory=list, max_length=20)
    custom_instructions: Optional[str] = Field(default=None, max_length=1000)
    generate_hooks: bool = False
    generate_title_pack: bool = False
    generate_thumbnail_premises: bool = False
    cta: Optional[CallToAction] = None
    relink: Optional[Relink] = None


class ScriptGenerateRequest(ScriptOptions):
    video_id: UUID

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "video_id": "d290f1ee-6c54-4b01-90e6-d701748f0851",
                    "style": "EDUCATIONAL",
                    "duration_min": 8,
                    "audience": "beginners",
                    "tone": "informative",
                    "generate_hooks": True,
                }
            ]
        }
    }

    @field_validator("key_points")
    @classmethod
    def _drop_blank_points(cls, value: list[str]) -> list[str]:
        return [point.strip() for point in value if point and point.strip()]

    def to_options(self) -> ScriptOptions:
        return ScriptOptions.model_validate(self.model_dump(exclude={"video_id"}))


class ScriptSection(BaseModel):
    title: str
    content: str
    estimated_duration: float = Field(
        default=0.0,
        validation_alias=AliasChoices("estimated_duration", "estimatedDuration"),
    )
    type: Literal["intro", "main", "conclusion", "transition"] = "main"

    @field_validator("type", mode="before")
    @classmethod
    def _normalise_type(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in {"intro", "main", "conclusion", "transition"}:
            return value.lower()
        return "main"


class Hook(BaseModel):
    id: str
    type: str = Field(description="One of the HookType values, as reported by the model")
    content: str
    reasoning: str


class TitleSuggestion(BaseModel):
    title: str
    reasoning: str
    clickability_score: float


class ThumbnailPremise(BaseModel):
    concept: str
    visual_elements: list[str]
    contrast_type: str = Field(description="One of the ContrastType values, as reported by the model")


class GeneratedScript(BaseModel):
    """Parsed model output; accepts the camelCase keys the prompt asks for."""

    title: str
    content: str
    estimated_duration: float = Field(
        validation_alias=AliasChoices("estimated_duration", "estimatedDuration")
    )
    word_count: int = Field(
        ge=0, validation_alias=AliasChoices("word_count", "wordCount")
    )
    sections: list[ScriptSection]
    hooks: Optional[list[Hook]] = None
    title_pack: Optional[list[TitleSuggestion]] = Field(
        default=None, validation_alias=AliasChoices("title_pack", "titlePack")
    )
    thumbnail_premises: Optional[list[ThumbnailPremise]] = Field(
        default=None,
        validation_alias=AliasChoices("thumbnail_premises", "thumbnailPremises"),
    )
    click_confirmation: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("click_confirmation", "clickConfirmation"),
    )
    payout_moments: Optional[list[str]] = Field(
        default=None, validation_alias=AliasChoices("payout_moments", "payoutMoments")
    )


class TitlePack(BaseModel):
    title_pack: list[TitleSuggestion] = Field(
        validation_alias=AliasChoices("title_pack", "titlePack")
    )
    thumbnail_premises: list[ThumbnailPremise] = Field(
        validation_alias=AliasChoices("thumbnail_premises", "thumbnailPremises")
    )


class HookVariation(BaseModel):
    id: str
    type: HookType
    content: str = Field(..., max_length=1000)
    reasoning: str = Field(..., max_length=500)


class TitleVariation(BaseModel):
    title: str = Field(..., max_length=100)
    reasoning: str = Field(..., max_length=500)
    clickability_score: float = Field(ge=0, le=10)


class PayoffScenario(BaseModel):
    id: str
    type: PayoffType
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=500)
    content: str = Field(..., max_length=2000)


class RemixVariations(BaseModel):
    hook_variations: list[HookVariation] = Field(
        validation_alias=AliasChoices("hook_variations", "hookVariations")
    )
    title_variations: list[TitleVariation] = Field(
        validation_alias=AliasChoices("title_variations", "titleVariations")
    )
    payoff_scenarios: list[PayoffScenario] = Field(
        validation_alias=AliasChoices("payoff_scenarios", "payoffScenarios")
    )


class Script(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    user_id: str
    video_id: UUID
    transcript_id: Optional[UUID] = None
    source_script_id: Optional[UUID] = Field(
        default=None, description="Script this one was remixed from"
    )
    title: str
    content: str = ""
    style: ScriptStyle = ScriptStyle.PROFESSIONAL
    duration_min: int = Field(default=5, ge=1, le=60)
    audience: str = "general"
    options: dict[str, Any] = Field(default_factory=dict)
    generation_data: dict[str, Any] = Field(default_factory=dict)
    status: ScriptStatus = ScriptStatus.DRAFT
    is_priority: bool = False
    has_watermark: bool = False
    processing_time_ms: Optional[int] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        from_attributes = True


class ScriptCreate(BaseModel):
    video_id: UUID
    transcript_id: Optional[UUID] = None
    source_script_id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=500)
    style: ScriptStyle
    duration_min: int = Field(ge=1, le=60)
    audience: str = "general"
    options: dict[str, Any] = Field(default_factory=dict)
    status: ScriptStatus = ScriptStatus.GENERATING
    is_priority: bool = False
    has_watermark: bool = False


class ScriptUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    status: Optional[ScriptStatus] = None
    generation_data: Optional[dict[str, Any]] = None
    has_watermark: Optional[bool] = None
    processing_time_ms: Optional[int] = None


class ScriptFilters(BaseModel):
    style: Optional[ScriptStyle] = None
    status: Optional[ScriptStatus] = None
    video_id: Optional[UUID] = None


class TitlePackRequest(BaseModel):
    video_id: UUID
    topic: Optional[str] = Field(default=None, max_length=200)
    niche: Optional[str] = Field(default=None, max_length=200)


class RemixVariationsRequest(BaseModel):
    script_id: UUID
    target_audience: str = Field(..., min_length=1, max_length=100)
    selected_hook: Optional[str] = Field(default=None, max_length=500)
    custom_instructions: Optional[str] = Field(default=None, max_length=1000)


class RemixSelections(BaseModel):
    hook: HookVariation
    title: TitleVariation
    payoff: PayoffScenario
    target_audience: str = Field(..., min_length=1, max_length=100)
    custom_instructions: Optional[str] = Field(default=None, max_length=1000)


class FinalRemixRequest(BaseModel):
    script_id: UUID
    selections: RemixSelections


class AIMetrics(BaseModel):
    generation_time_ms: int
    word_count: Optional[int] = None
    estimated_duration: Optional[float] = None
    sections: Optional[int] = None


class SubscriptionContext(BaseModel):
    tier: SubscriptionTier
    usage: Optional[UsageInfo] = None
    has_watermark: bool = False


class GeneratedScriptResult(BaseModel):
    script: Script
    sections: list[ScriptSection] = Field(default_factory=list)
    hooks: Optional[list[Hook]] = None
    title_pack: Optional[list[TitleSuggestion]] = None
    thumbnail_premises: Optional[list[ThumbnailPremise]] = None
    click_confirmation: Optional[str] = None
    payout_moments: Optional[list[str]] = None
    ai_metrics: AIMetrics
    subscription: SubscriptionContext


class GeneratedScriptResponse(BaseModel):
    data: GeneratedScriptResult


class TitlePackResult(BaseModel):
    video_id: UUID
    video_title: str
    title_pack: list[TitleSuggestion]
    thumbnail_premises: list[ThumbnailPremise]


class TitlePackResponse(BaseModel):
    data: TitlePackResult


class RemixVariationsResult(BaseModel):
    script_id: UUID
    original_title: str
    video_title: str
    variations: RemixVariations
    ai_metrics: AIMetrics
    subscription: SubscriptionContext


class RemixVariationsResponse(BaseModel):
    data: RemixVariationsResult


class FinalRemixResult(BaseModel):
    script: Script
    original_script_id: UUID
    selections: RemixSelections
    ai_metrics: AIMetrics
    subscription: SubscriptionContext


class FinalRemixResponse(BaseModel):
    data: FinalRemixResult


class ScriptResponse(BaseModel):
    data: Script


class ScriptListResponse(BaseModel):
    data: list[Script]
    count: int
    pagination: PaginationMeta


class VideoStats(BaseModel):
    total_scripts: int = Field(ge=0)
    completed_scripts: int = Field(ge=0)
    has_transcript: bool
    transcript_duration: float = Field(default=0.0, ge=0, description="Seconds")


class VideoDetail(BaseModel):
    video: Video
    transcript: Optional[TranscriptView] = None
    scripts: list[Script] = Field(default_factory=list)
    stats: VideoStats


class VideoDetailResponse(BaseModel):
    data: VideoDetail
