"""
Tests for prompt construction and OpenAI response handling in the script generator.
"""

import asyncio
import json
from types import SimpleNamespace

import httpx
import openai
import pytest
from hypothesis import given, settings, strategies as st

from scriptforge.domain.scripts import (
    CallToAction,
    CtaType,
    HookVariation,
    PayoffScenario,
    RemixSelections,
    Script,
    ScriptOptions,
    ScriptStatus,
    ScriptStyle,
    TitleVariation,
    Tone,
)
from scriptforge.services.script_generator import (
    TITLE_PACK_TRANSCRIPT_CHARS,
    ScriptGenerationError,
    ScriptGenerator,
    build_final_remix_prompt,
    build_remix_variations_prompt,
    build_script_prompt,
    build_title_pack_prompt,
    get_audience_instructions,
    target_word_count,
)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"

SCRIPT_RESPONSE = {
    "title": "Budgeting 101",
    "content": "Here is how budgeting works.",
    "estimatedDuration": 5,
    "wordCount": 750,
    "clickConfirmation": "Yes, this is the budgeting guide you clicked for.",
    "sections": [
        {"title": "Intro", "content": "Hook", "estimatedDuration": 0.5, "type": "INTRO"},
        {"title": "Body", "content": "Details", "estimatedDuration": 4.5, "type": "weird"},
    ],
    "payoutMoments": ["Track spending"],
}


class FakeCompletions:
    def __init__(self, content=None, error=None) -> None:
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=message)],
            usage=SimpleNamespace(total_tokens=321),
        )


def make_generator(content=None, error=None):
    completions = FakeCompletions(content, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return ScriptGenerator(client, model="gpt-test"), completions


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", OPENAI_URL))


def _script(**overrides) -> Script:
    values = {
        "user_id": "user_1",
        "video_id": "d290f1ee-6c54-4b01-90e6-d701748f0851",
        "title": "Original Budget Script",
        "content": "Budgeting starts with tracking.",
        "style": ScriptStyle.EDUCATIONAL,
        "duration_min": 4,
        "status": ScriptStatus.COMPLETED,
    }
    values.update(overrides)
    return Script(**values)


def _selections() -> RemixSelections:
    return RemixSelections(
        hook=HookVariation(id="hook_2", type="bold_statement", content="Budgets are freedom.", reasoning="Bold"),
        title=TitleVariation(title="Budgeting for Students", reasoning="Audience", clickability_score=8),
        payoff=PayoffScenario(
            id="payoff_1",
            type="action_plan",
            title="Weekly plan",
            description="A weekly routine",
            content="Every Sunday, review.",
        ),
        target_audience="students",
    )


@settings(max_examples=100)
@given(duration=st.integers(min_value=1, max_value=60))
def test_prompt_states_duration_and_word_target(duration):
    """
    Property: the prompt asks for 150 words per minute of runtime.
    """
    prompt = build_script_prompt("transcript", "Title", ScriptOptions(duration_min=duration))
    assert target_word_count(duration) == 150 * duration
    assert f"Duration: {duration} minutes ({150 * duration} words)" in prompt


def test_prompt_includes_style_audience_and_tone():
    options = ScriptOptions(style=ScriptStyle.STORYTELLING, audience="beginners", tone=Tone.ENTHUSIASTIC)
    prompt = build_script_prompt("the transcript", "My Video", options)
    assert "Video Title: My Video" in prompt
    assert "Transcript: the transcript" in prompt
    assert "Style: STORYTELLING" in prompt
    assert f"Audience: beginners - {get_audience_instructions('beginners')}" in prompt
    assert "Tone: " in prompt


def test_prompt_omits_optional_blocks_unless_requested():
    prompt = build_script_prompt("t", "v", ScriptOptions())
    assert '"hooks": [' not in prompt
    assert '"titlePack": [' not in prompt
    assert '"thumbnailPremises": [' not in prompt
    assert "Tone: " not in prompt

    prompt = build_script_prompt(
        "t",
        "v",
        ScriptOptions(generate_hooks=True, generate_title_pack=True, generate_thumbnail_premises=True),
    )
    assert '"hooks": [' in prompt
    assert '"titlePack": [' in prompt
    assert '"thumbnailPremises": [' in prompt


def test_prompt_includes_cta_key_points_and_instructions():
    options = ScriptOptions(
        key_points=["Save first", "Spend later"],
        cta=CallToAction(type=CtaType.NEWSLETTER, label="Join the list", url="https://example.com"),
        custom_instructions="Keep it short",
    )
    prompt = build_script_prompt("t", "v", options)
    assert "- Save first" in prompt
    assert "Type: newsletter" in prompt
    assert 'Label: "Join the list"' in prompt
    assert "CTA Integration" in prompt
    assert "Additional instructions: Keep it short" in prompt


def test_unknown_audience_gets_generic_instruction():
    assert get_audience_instructions("Retired Pilots") == "Tailored for Retired Pilots audience"


def test_title_pack_prompt_truncates_long_transcripts():
    long_transcript = "x" * (TITLE_PACK_TRANSCRIPT_CHARS + 50)
    prompt = build_title_pack_prompt(long_transcript, "Video", topic="Money", niche="Finance")
    assert "x" * TITLE_PACK_TRANSCRIPT_CHARS + "... [truncated]" in prompt
    assert "x" * (TITLE_PACK_TRANSCRIPT_CHARS + 1) not in prompt
    assert "Topic: Money" in prompt
    assert "Niche: Finance" in prompt

    short = build_title_pack_prompt("short transcript", "Video")
    assert "[truncated]" not in short
    assert "Topic:" not in short


def test_remix_prompts_carry_script_and_selections():
    script = _script()
    variations_prompt = build_remix_variations_prompt(
        script, "Budget Video", "students", selected_hook="Start with a question"
    )
    assert "Content: Budgeting starts with tracking." in variations_prompt
    assert "Preferred hook direction: Start with a question" in variations_prompt

    final_prompt = build_final_remix_prompt(script, _selections(), "Budget Video")
    assert "Title: Budgeting for Students" in final_prompt
    assert "Hook (bold_statement): Budgets are freedom." in final_prompt
    assert "Payoff Content: Every Sunday, review." in final_prompt
    assert "(600 words)" in final_prompt


def test_generate_script_parses_camel_case_response():
    generator, completions = make_generator(json.dumps(SCRIPT_RESPONSE))
    result = asyncio.run(generator.generate_script("transcript", "Video", ScriptOptions()))

    assert result.title == "Budgeting 101"
    assert result.word_count == 750
    assert result.click_confirmation.startswith("Yes")
    assert [section.type for section in result.sections] == ["intro", "main"]
    request = completions.requests[0]
    assert request["model"] == "gpt-test"
    assert request["response_format"] == {"type": "json_object"}
    assert request["messages"][0]["role"] == "system"
    assert request["max_tokens"] == 4000


def test_generate_script_rejects_blank_transcript():
    generator, completions = make_generator(json.dumps(SCRIPT_RESPONSE))
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_script("   ", "Video", ScriptOptions()))
    assert excinfo.value.code == ScriptGenerationError.INVALID_INPUT
    assert completions.requests == []


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("not json", "Failed to parse AI response as JSON"),
        (json.dumps({"title": "missing fields"}), "AI response does not match expected format"),
        ("", "No response received from OpenAI"),
    ],
)
def test_generate_script_bad_responses_are_api_errors(content, message):
    generator, _ = make_generator(content)
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_script("transcript", "Video", ScriptOptions()))
    assert excinfo.value.code == ScriptGenerationError.API_ERROR
    assert excinfo.value.message == message


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (
            openai.RateLimitError("slow down", response=_response(429), body=None),
            ScriptGenerationError.RATE_LIMIT,
        ),
        (
            openai.BadRequestError(
                "too long",
                response=_response(400),
                body={"code": "context_length_exceeded", "message": "too long"},
            ),
            ScriptGenerationError.TOKEN_LIMIT,
        ),
        (
            openai.BadRequestError("bad param", response=_response(400), body=None),
            ScriptGenerationError.API_ERROR,
        ),
        (
            openai.APIConnectionError(request=httpx.Request("POST", OPENAI_URL)),
            ScriptGenerationError.API_ERROR,
        ),
    ],
)
def test_openai_errors_are_mapped(error, code):
    generator, _ = make_generator(error=error)
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_script("transcript", "Video", ScriptOptions()))
    assert excinfo.value.code == code


def _title_pack(titles: int, premises: int) -> str:
    return json.dumps(
        {
            "titlePack": [
                {"title": f"T{i}", "reasoning": "r", "clickability_score": 7} for i in range(titles)
            ],
            "thumbnailPremises": [
                {"concept": f"C{i}", "visual_elements": ["face"], "contrast_type": "before_after"}
                for i in range(premises)
            ],
        }
    )


def test_generate_title_pack_requires_exact_counts():
    generator, completions = make_generator(_title_pack(5, 3))
    pack = asyncio.run(generator.generate_title_pack("transcript", "Video"))
    assert len(pack.title_pack) == 5
    assert len(pack.thumbnail_premises) == 3
    assert completions.requests[0]["temperature"] == 0.8

    generator, _ = make_generator(_title_pack(4, 3))
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_title_pack("transcript", "Video"))
    assert excinfo.value.message == "Invalid title pack structure"

    generator, _ = make_generator(_title_pack(5, 2))
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_title_pack("transcript", "Video"))
    assert excinfo.value.message == "Invalid thumbnail premises structure"


def test_generate_script_keeps_unlisted_hook_types_and_scores():
    response = dict(
        SCRIPT_RESPONSE,
        hooks=[{"id": "hook_1", "type": "statement", "content": "Stop.", "reasoning": "Short"}],
        titlePack=[{"title": "Budget Hacks", "reasoning": "r", "clickability_score": 85}],
        thumbnailPremises=[
            {"concept": "Shock", "visual_elements": ["face"], "contrast_type": "split_screen"}
        ],
    )
    generator, _ = make_generator(json.dumps(response))
    result = asyncio.run(generator.generate_script("transcript", "Video", ScriptOptions()))

    assert result.hooks[0].type == "statement"
    assert result.title_pack[0].clickability_score == 85
    assert result.thumbnail_premises[0].contrast_type == "split_screen"


def test_generate_title_pack_accepts_out_of_range_scores():
    payload = json.loads(_title_pack(5, 3))
    payload["titlePack"][0]["clickability_score"] = 85
    generator, _ = make_generator(json.dumps(payload))
    pack = asyncio.run(generator.generate_title_pack("transcript", "Video"))
    assert pack.title_pack[0].clickability_score == 85


def test_remix_selections_still_require_known_hook_types():
    with pytest.raises(ValueError):
        HookVariation(id="hook_1", type="statement", content="Stop.", reasoning="Short")


def test_generate_remix_variations_and_final_remix():
    variations_json = json.dumps(
        {
            "hookVariations": [
                {"id": "hook_1", "type": "question", "content": "Why budget?", "reasoning": "Curiosity"}
            ],
            "titleVariations": [{"title": "Budget Smarter", "reasoning": "Clear", "clickability_score": 9}],
            "payoffScenarios": [
                {
                    "id": "payoff_1",
                    "type": "cliffhanger",
                    "title": "Next time",
                    "description": "Tease",
                    "content": "Part two reveals more.",
                }
            ],
        }
    )
    generator, _ = make_generator(variations_json)
    variations = asyncio.run(generator.generate_remix_variations(_script(), "Video", "students"))
    assert variations.hook_variations[0].content == "Why budget?"

    generator, _ = make_generator(json.dumps(SCRIPT_RESPONSE))
    remix = asyncio.run(generator.generate_final_remix(_script(), _selections(), "Video"))
    assert remix.title == "Budgeting 101"

    generator, completions = make_generator(variations_json)
    with pytest.raises(ScriptGenerationError) as excinfo:
        asyncio.run(generator.generate_remix_variations(_script(content=""), "Video", "students"))
    assert excinfo.value.code == ScriptGenerationError.INVALID_INPUT
    assert completions.requests == []
