"""OpenAI chat completion wrapper that turns transcripts into YouTube scripts."""

from __future__ import annotations

import json
from time import perf_counter
from typing import Optional, Type, TypeVar

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from ..core.config import get_settings
from ..domain.scripts import (
    GeneratedScript,
    RemixSelections,
    RemixVariations,
    Script,
    ScriptOptions,
    ScriptStyle,
    TitlePack,
    Tone,
)
from ..telemetry import observe_generation

logger = structlog.get_logger()

T_Model = TypeVar("T_Model", bound=BaseModel)

WORDS_PER_MINUTE = 150
TITLE_PACK_TRANSCRIPT_CHARS = 2000
TITLE_PACK_TITLES = 5
TITLE_PACK_PREMISES = 3

SCRIPT_SYSTEM_PROMPT = (
    "You are a YouTube Script Architect specializing in HIGH-RETENTION content that "
    "maximizes watch time and engagement. You create scripts with click confirmation, "
    "hooks, payout structure, and native CTAs. Always respond with valid JSON in the "
    "exact format requested."
)
PACKAGING_SYSTEM_PROMPT = (
    "You are a YouTube Packaging Expert who creates viral titles and thumbnails. "
    "Always respond with valid JSON."
)
REMIX_SYSTEM_PROMPT = (
    "You are a YouTube Script Architect who remixes existing scripts for new audiences "
    "while keeping what made them work. Always respond with valid JSON in the exact "
    "format requested."
)

STYLE_INSTRUCTIONS: dict[ScriptStyle, str] = {
    ScriptStyle.PROFESSIONAL: "Formal, authoritative tone with clear structure and professional language",
    ScriptStyle.CASUAL: "Conversational, friendly tone that feels like talking to a friend",
    ScriptStyle.EDUCATIONAL: "Clear explanations, step-by-step approach, emphasis on learning outcomes",
    ScriptStyle.ENTERTAINING: "Engaging, humorous, with storytelling elements and personality",
    ScriptStyle.TECHNICAL: "Detailed, precise, with proper terminology and comprehensive coverage",
    ScriptStyle.STORYTELLING: "Narrative structure with compelling story arc and emotional engagement",
    ScriptStyle.PERSUASIVE: (
        "Compelling, influential tone designed to convince and motivate action with strong "
        "arguments and emotional appeals"
    ),
    ScriptStyle.NARRATIVE: (
        "Rich storytelling with character development, plot structure, and immersive "
        "world-building elements"
    ),
    ScriptStyle.ACADEMIC: (
        "Scholarly tone with rigorous analysis, citations, theoretical frameworks, and "
        "research-backed conclusions"
    ),
}

AUDIENCE_INSTRUCTIONS: dict[str, str] = {
    "general": "General audience with no assumed prior knowledge",
    "beginners": "Complete beginners who need basic concepts explained clearly",
    "intermediate": "Some background knowledge, can handle moderate complexity",
    "experts": "Advanced audience who appreciates technical depth and nuance",
    "students": "Educational focus with clear learning objectives and examples",
    "professionals": "Business context with practical applications and outcomes",
}

TONE_INSTRUCTIONS: dict[Tone, str] = {
    Tone.FORMAL: "Professional and authoritative language",
    Tone.CASUAL: "Relaxed and conversational approach",
    Tone.ENTHUSIASTIC: "Energetic and passionate delivery",
    Tone.INFORMATIVE: "Clear and educational focus",
}


class ScriptGeneratorConfigError(RuntimeError):
    """Raised when the OpenAI client cannot be configured."""


class ScriptGenerationError(Exception):
    """Generation failure carrying one of the codes below."""

    API_ERROR = "API_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    TOKEN_LIMIT = "TOKEN_LIMIT"
    RATE_LIMIT = "RATE_LIMIT"

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def get_style_instructions(style: ScriptStyle) -> str:
    return STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS[ScriptStyle.PROFESSIONAL])


def get_audience_instructions(audience: str) -> str:
    return AUDIENCE_INSTRUCTIONS.get(audience.lower(), f"Tailored for {audience} audience")


def get_tone_instructions(tone: Tone | None) -> str:
    if tone is None:
        return ""
    return TONE_INSTRUCTIONS.get(tone, "")


def target_word_count(duration_min: int) -> int:
    return round(WORDS_PER_MINUTE * duration_min)


def _optional_json_blocks(options: ScriptOptions) -> str:
    blocks: list[str] = []
    if options.generate_hooks:
        blocks.append(
            '  "hooks": [\n'
            "    {\n"
            '      "id": "hook_1",\n'
            '      "type": "question|context|bold_statement|curiosity_gap",\n'
            '      "content": "Hook content",\n'
            '      "reasoning": "Why this hook works"\n'
            "    }\n"
            "  ],"
        )
    if options.generate_title_pack:
        blocks.append(
            '  "titlePack": [\n'
            "    {\n"
            '      "title": "Alternative title",\n'
            '      "reasoning": "Why this title works",\n'
            '      "clickability_score": 8.5\n'
            "    }\n"
            "  ],"
        )
    if options.generate_thumbnail_premises:
        blocks.append(
            '  "thumbnailPremises": [\n'
            "    {\n"
            '      "concept": "Visual concept description",\n'
            '      "visual_elements": ["element1", "element2"],\n'
            '      "contrast_type": "before_after|a_b_comparison|problem_solution|curiosity"\n'
            "    }\n"
            "  ],"
        )
    return "\n".join(blocks)


def build_script_prompt(transcript: str, video_title: str, options: ScriptOptions) -> str:
    """Render the user prompt for a full script generation."""

    extra_sections: list[str] = []
    if options.key_points:
        points = "\n".join(f"- {point}" for point in options.key_points)
        extra_sections.append(f"Key points to emphasize:\n{points}")
    if options.cta is not None:
        lines = [
            "**Call-to-Action:**",
            f"Type: {options.cta.type.value}",
            f'Label: "{options.cta.label}"',
        ]
        if options.cta.url:
            lines.append(f"URL: {options.cta.url}")
        extra_sections.append("\n".join(lines))
    if options.relink is not None:
        lines = ["**Relink Outro:**", f"Next Video: {options.relink.url}"]
        if options.relink.title:
            lines.append(f'Title: "{options.relink.title}"')
        extra_sections.append("\n".join(lines))
    if options.custom_instructions:
        extra_sections.append(f"Additional instructions: {options.custom_instructions}")

    tone = get_tone_instructions(options.tone)
    requirements = [
        f"Duration: {options.duration_min} minutes ({target_word_count(options.duration_min)} words)",
        f"Style: {options.style.value} - {get_style_instructions(options.style)}",
        f"Audience: {options.audience} - {get_audience_instructions(options.audience)}",
    ]
    if tone:
        requirements.append(f"Tone: {tone}")
    requirements.append(
        f"Mode: {options.mode.value} "
        "(bullet = punchy lists, word = flowing prose, hybrid = mixed)"
    )
    structure = []
    if options.include_intro:
        structure.append("- Hook (0-15s): Grab attention + confirm click")
        structure.append("- Context (15-30s): Set up the problem/promise")
    structure.append("- Value Delivery (30s-90%): Main content with payouts")
    if options.cta is not None:
        structure.append("- CTA Integration (80-90%): Natural call-to-action")
    if options.include_conclusion:
        structure.append("- Outro/Relink (90-100%): Bridge to next video")

    optional_blocks = _optional_json_blocks(options)
    return f"""You are a YouTube Script Architect specializing in HIGH-RETENTION content. Create a script that maximizes watch time and engagement.

**SOURCE MATERIAL:**
Video Title: {video_title}
Transcript: {transcript}

**TARGET SPECIFICATIONS:**
{chr(10).join(requirements)}

{chr(10).join(chr(10) + section for section in extra_sections)}

**CRITICAL REQUIREMENTS:**

1. **CLICK CONFIRMATION** - First 2-3 lines must explicitly confirm the video title promise
2. **HOOK VARIATIONS** - Generate 3-5 different opening hooks if requested
3. **PAYOUT STRUCTURE** - End each major section with a valuable insight/takeaway
4. **MINI RE-HOOKS** - Insert curiosity bridges between sections to prevent drop-off
5. **NATIVE CTA** - Integrate call-to-action naturally into content flow
6. **RELINK OUTRO** - Bridge to next video with compelling reason to watch

**RESPONSE FORMAT (JSON):**
{{
  "title": "Script title (can be different from video title)",
  "content": "Complete script with proper formatting and flow",
  "estimatedDuration": {options.duration_min},
  "wordCount": 0,
  "clickConfirmation": "First 2-3 lines that confirm the title promise",
  "sections": [
    {{
      "title": "Section name",
      "content": "Section content with payout at end",
      "estimatedDuration": 0.0,
      "type": "intro|main|conclusion|transition"
    }}
  ],
{optional_blocks}
  "payoutMoments": ["Key insight 1", "Key insight 2", "Key insight 3"]
}}

STRUCTURE YOUR SCRIPT FOR MAXIMUM RETENTION:
{chr(10).join(structure)}

Make every line count for retention!"""


def build_title_pack_prompt(
    transcript: str,
    video_title: str,
    topic: str | None = None,
    niche: str | None = None,
) -> str:
    context = [f"Original Title: {video_title}"]
    if topic:
        context.append(f"Topic: {topic}")
    if niche:
        context.append(f"Niche: {niche}")
    excerpt = transcript[:TITLE_PACK_TRANSCRIPT_CHARS]
    if len(transcript) > TITLE_PACK_TRANSCRIPT_CHARS:
        excerpt += "... [truncated]"
    context.append(f"Transcript: {excerpt}")
    return f"""You are a YouTube Packaging Expert specializing in high-clickability titles and thumbnails.

**TASK:** Generate {TITLE_PACK_TITLES} compelling title options and {TITLE_PACK_PREMISES} thumbnail premises for this video.

**SOURCE MATERIAL:**
{chr(10).join(context)}

**TITLE REQUIREMENTS:**
- Create curiosity loops without giving away the answer
- Use numbers, questions, or bold statements
- Keep under 60 characters for mobile optimization
- Score each title for clickability (1-10)

**THUMBNAIL REQUIREMENTS:**
- Focus on visual contrast and emotion
- Suggest specific visual elements and text overlays
- Create before/after or A/B comparison opportunities
- Consider facial expressions and color psychology

**RESPONSE FORMAT (JSON):**
{{
  "titlePack": [
    {{
      "title": "Compelling title under 60 characters",
      "reasoning": "Why this title creates curiosity and compels clicks",
      "clickability_score": 8.5
    }}
  ],
  "thumbnailPremises": [
    {{
      "concept": "Main visual concept description",
      "visual_elements": ["facial expression", "text overlay", "background element"],
      "contrast_type": "before_after"
    }}
  ]
}}

Generate exactly {TITLE_PACK_TITLES} titles and {TITLE_PACK_PREMISES} thumbnail concepts."""


def build_remix_variations_prompt(
    script: Script,
    video_title: str,
    target_audience: str,
    selected_hook: str | None = None,
    custom_instructions: str | None = None,
) -> str:
    extras: list[str] = []
    if selected_hook:
        extras.append(f"Preferred hook direction: {selected_hook}")
    if custom_instructions:
        extras.append(f"Additional instructions: {custom_instructions}")
    return f"""Remix the script below for a new target audience. Offer options the creator can pick from.

**ORIGINAL SCRIPT:**
Video Title: {video_title}
Script Title: {script.title}
Style: {script.style.value}
Duration: {script.duration_min} minutes
Content: {script.content}

**NEW TARGET AUDIENCE:**
{target_audience} - {get_audience_instructions(target_audience)}
{chr(10).join(extras)}

**REQUIREMENTS:**
- 3 hook variations, each a different type, rewritten for the new audience
- 3 title variations under 100 characters, scored for clickability (1-10)
- 3 payoff scenarios describing different ways to close the script

**RESPONSE FORMAT (JSON):**
{{
  "hookVariations": [
    {{
      "id": "hook_1",
      "type": "question|context|bold_statement|curiosity_gap",
      "content": "Opening lines",
      "reasoning": "Why this hook fits the new audience"
    }}
  ],
  "titleVariations": [
    {{
      "title": "Remixed title",
      "reasoning": "Why this title works for the new audience",
      "clickability_score": 8.0
    }}
  ],
  "payoffScenarios": [
    {{
      "id": "payoff_1",
      "type": "unexpected_reveal|action_plan|transformation_story|cliffhanger|call_to_action",
      "title": "Short name for the payoff",
      "description": "What the viewer walks away with",
      "content": "Closing lines that deliver the payoff"
    }}
  ]
}}"""


def build_final_remix_prompt(
    script: Script, selections: RemixSelections, video_title: str | None = None
) -> str:
    custom = (
        f"\nAdditional instructions: {selections.custom_instructions}"
        if selections.custom_instructions
        else ""
    )
    return f"""Rewrite the script below into a finished remix using the selected hook, title and payoff.

**ORIGINAL SCRIPT:**
Video Title: {video_title or script.title}
Script Title: {script.title}
Style: {script.style.value} - {get_style_instructions(script.style)}
Duration: {script.duration_min} minutes ({target_word_count(script.duration_min)} words)
Content: {script.content}

**SELECTIONS:**
Target Audience: {selections.target_audience} - {get_audience_instructions(selections.target_audience)}
Title: {selections.title.title}
Hook ({selections.hook.type.value}): {selections.hook.content}
Payoff ({selections.payoff.type.value}): {selections.payoff.title} - {selections.payoff.description}
Payoff Content: {selections.payoff.content}{custom}

**REQUIREMENTS:**
- Open with the selected hook and confirm the selected title within the first lines
- Keep the key information of the original script
- End with the selected payoff

**RESPONSE FORMAT (JSON):**
{{
  "title": "{selections.title.title}",
  "content": "Complete remixed script",
  "estimatedDuration": {script.duration_min},
  "wordCount": 0,
  "clickConfirmation": "First lines that confirm the title promise",
  "sections": [
    {{
      "title": "Section name",
      "content": "Section content",
      "estimatedDuration": 0.0,
      "type": "intro|main|conclusion|transition"
    }}
  ],
  "payoutMoments": ["Key insight 1", "Key insight 2"]
}}"""


def _is_context_length_error(exc: openai.BadRequestError) -> bool:
    if exc.code == "context_length_exceeded":
        return True
    message = str(exc.message).lower()
    return "context length" in message or "maximum context" in message


class ScriptGenerator:
    """Async wrapper over the OpenAI chat completions API."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str,
        script_max_tokens: int = 4000,
        script_temperature: float = 0.7,
        title_pack_max_tokens: int = 2000,
        title_pack_temperature: float = 0.8,
    ) -> None:
        self._client = client
        self._model = model
        self._script_max_tokens = script_max_tokens
        self._script_temperature = script_temperature
        self._title_pack_max_tokens = title_pack_max_tokens
        self._title_pack_temperature = title_pack_temperature

    @property
    def model(self) -> str:
        return self._model

    async def _complete(
        self,
        *,
        kind: str,
        system_prompt: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        started = perf_counter()
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
                response_format={"type": "json_object"},
            )
        except openai.RateLimitError as exc:
            observe_generation(kind, "rate_limited", perf_counter() - started)
            logger.warning("script_generator.rate_limited", kind=kind)
            raise ScriptGenerationError(
                ScriptGenerationError.RATE_LIMIT,
                "Rate limit exceeded, please try again later",
            ) from exc
        except openai.BadRequestError as exc:
            observe_generation(kind, "rejected", perf_counter() - started)
            if _is_context_length_error(exc):
                raise ScriptGenerationError(
                    ScriptGenerationError.TOKEN_LIMIT, "Input too long for AI model"
                ) from exc
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, f"OpenAI API error: {exc.message}"
            ) from exc
        except openai.APIError as exc:
            observe_generation(kind, "error", perf_counter() - started)
            logger.error("script_generator.api_error", kind=kind, error=str(exc))
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, f"OpenAI API error: {exc.message}"
            ) from exc

        elapsed = perf_counter() - started
        observe_generation(kind, "success", elapsed)
        content = completion.choices[0].message.content if completion.choices else None
        usage = completion.usage
        logger.info(
            "script_generator.completed",
            kind=kind,
            model=self._model,
            duration_ms=int(elapsed * 1000),
            total_tokens=usage.total_tokens if usage else None,
        )
        if not content:
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, "No response received from OpenAI"
            )
        return content

    @staticmethod
    def _parse(raw: str, model_type: Type[T_Model]) -> T_Model:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, "Failed to parse AI response as JSON"
            ) from exc
        try:
            return model_type.model_validate(payload)
        except ValidationError as exc:
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR,
                "AI response does not match expected format",
            ) from exc

    async def generate_script(
        self, transcript: str, video_title: str, options: ScriptOptions
    ) -> GeneratedScript:
        if not transcript or not transcript.strip():
            raise ScriptGenerationError(
                ScriptGenerationError.INVALID_INPUT, "Transcript cannot be empty"
            )
        if not 1 <= options.duration_min <= 60:
            raise ScriptGenerationError(
                ScriptGenerationError.INVALID_INPUT,
                "Duration must be between 1 and 60 minutes",
            )
        raw = await self._complete(
            kind="script",
            system_prompt=SCRIPT_SYSTEM_PROMPT,
            prompt=build_script_prompt(transcript, video_title, options),
            max_tokens=self._script_max_tokens,
            temperature=self._script_temperature,
        )
        return self._parse(raw, GeneratedScript)

    async def generate_title_pack(
        self,
        transcript: str,
        video_title: str,
        topic: Optional[str] = None,
        niche: Optional[str] = None,
    ) -> TitlePack:
        if not transcript or not transcript.strip():
            raise ScriptGenerationError(
                ScriptGenerationError.INVALID_INPUT, "Transcript cannot be empty"
            )
        raw = await self._complete(
            kind="title_pack",
            system_prompt=PACKAGING_SYSTEM_PROMPT,
            prompt=build_title_pack_prompt(transcript, video_title, topic, niche),
            max_tokens=self._title_pack_max_tokens,
            temperature=self._title_pack_temperature,
        )
        pack = self._parse(raw, TitlePack)
        if len(pack.title_pack) != TITLE_PACK_TITLES:
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, "Invalid title pack structure"
            )
        if len(pack.thumbnail_premises) != TITLE_PACK_PREMISES:
            raise ScriptGenerationError(
                ScriptGenerationError.API_ERROR, "Invalid thumbnail premises structure"
            )
        return pack

    async def generate_remix_variations(
        self,
        script: Script,
        video_title: str,
        target_audience: str,
        selected_hook: Optional[str] = None,
        custom_instructions: Optional[str] = None,
    ) -> RemixVariations:
        if not script.content.strip():
            raise ScriptGenerationError(
                ScriptGenerationError.INVALID_INPUT, "Script content cannot be empty"
            )
        raw = await self._complete(
            kind="remix_variations",
            system_prompt=REMIX_SYSTEM_PROMPT,
            prompt=build_remix_variations_prompt(
                script, video_title, target_audience, selected_hook, custom_instructions
            ),
            max_tokens=self._title_pack_max_tokens,
            temperature=self._title_pack_temperature,
        )
        return self._parse(raw, RemixVariations)

    async def generate_final_remix(
        self,
        script: Script,
        selections: RemixSelections,
        video_title: Optional[str] = None,
    ) -> GeneratedScript:
        if not script.content.strip():
            raise ScriptGenerationError(
                ScriptGenerationError.INVALID_INPUT, "Script content cannot be empty"
            )
        raw = await self._complete(
            kind="final_remix",
            system_prompt=REMIX_SYSTEM_PROMPT,
            prompt=build_final_remix_prompt(script, selections, video_title),
            max_tokens=self._script_max_tokens,
            temperature=self._script_temperature,
        )
        return self._parse(raw, GeneratedScript)


def build_generator_from_settings() -> ScriptGenerator:
    settings = get_settings()
    if not settings.openai_api_key:
        raise ScriptGeneratorConfigError(
            "OpenAI API key must be configured via OPENAI_API_KEY"
        )
    client = AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.openai_timeout_seconds,
    )
    return ScriptGenerator(
        client,
        model=settings.openai_model,
        script_max_tokens=settings.script_max_tokens,
        script_temperature=settings.script_temperature,
        title_pack_max_tokens=settings.title_pack_max_tokens,
        title_pack_temperature=settings.title_pack_temperature,
    )
