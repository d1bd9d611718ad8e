"""Pytest configuration and fixtures for the API tests."""

import os

os.environ.setdefault("AUTH_JWT_KEY", "test-signing-key")
os.environ.setdefault("ADMIN_EMAILS", "admin@scriptforge.test")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_PRICE_PRO_MONTHLY", "price_pro")
os.environ.setdefault("STRIPE_PRICE_BUSINESS_MONTHLY", "price_business")
os.environ.setdefault("STRIPE_PRICE_ENTERPRISE_MONTHLY", "price_enterprise")
os.environ.setdefault("ENABLE_PROMETHEUS_METRICS", "false")

import hashlib
import hmac
import time
from types import SimpleNamespace
from typing import Any

import pytest
from fastapi.testclient import TestClient

from scriptforge.api import dependencies as deps
from scriptforge.core.security import create_access_token
from scriptforge.domain.scripts import (
    GeneratedScript,
    RemixVariations,
    ScriptSection,
    TitlePack,
)
from scriptforge.domain.transcripts import TranscriptSegment
from scriptforge.main import app
from scriptforge.repositories.audiences import InMemoryAudiencesRepository
from scriptforge.repositories.rate_limits import InMemoryRateLimitRepository
from scriptforge.repositories.scripts import InMemoryScriptsRepository
from scriptforge.repositories.transcripts import InMemoryTranscriptsRepository
from scriptforge.repositories.usage_logs import InMemoryUsageLogsRepository
from scriptforge.repositories.users import InMemoryUsersRepository
from scriptforge.repositories.videos import InMemoryVideosRepository
from scriptforge.services.script_generator import ScriptGenerationError
from scriptforge.services.stripe_gateway import StripeGateway, build_price_map
from scriptforge.services.youtube import TranscriptResult, YouTubeTranscriptError

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]


class FakeYouTubeClient:
    """Serves canned transcripts keyed by video id."""

    def __init__(self) -> None:
        self.transcripts: dict[str, list[TranscriptSegment]] = {}
        self.titles: dict[str, str] = {}
        self.errors: dict[str, YouTubeTranscriptError] = {}
        self.fetch_calls: list[str] = []

    async def fetch_transcript(self, url_or_id: str, language: str | None = None) -> TranscriptResult:
        self.fetch_calls.append(url_or_id)
        if url_or_id in self.errors:
            raise self.errors[url_or_id]
        segments = self.transcripts.get(url_or_id)
        if not segments:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.NO_TRANSCRIPT, "Transcript is empty", url_or_id
            )
        return TranscriptResult(
            video_id=url_or_id,
            segments=segments,
            language=language or "en",
            total_duration=max(s.offset + s.duration for s in segments),
            full_text=" ".join(s.text for s in segments),
        )

    async def fetch_title(self, video_id: str) -> str:
        return self.titles.get(video_id, f"YouTube Video (ID: {video_id})")


def sample_generated_script(title: str = "How Compound Interest Works") -> GeneratedScript:
    return GeneratedScript(
        title=title,
        content="Welcome back. Today we unpack compound interest.",
        estimated_duration=5,
        word_count=750,
        sections=[
            ScriptSection(title="Intro", content="Hook line", estimated_duration=0.5, type="intro"),
            ScriptSection(title="Body", content="Main points", estimated_duration=4.0, type="main"),
        ],
        click_confirmation="Yes, this really is how compound interest works.",
        payout_moments=["Start early", "Stay consistent"],
    )


def sample_remix_variations() -> RemixVariations:
    return RemixVariations.model_validate(
        {
            "hookVariations": [
                {"id": "hook_1", "type": "question", "content": "Ever wondered?", "reasoning": "Curiosity"}
            ],
            "titleVariations": [
                {"title": "Money Grows", "reasoning": "Simple", "clickability_score": 7.5}
            ],
            "payoffScenarios": [
                {
                    "id": "payoff_1",
                    "type": "action_plan",
                    "title": "Three steps",
                    "description": "A plan to start today",
                    "content": "Open an account, automate, wait.",
                }
            ],
        }
    )


class FakeScriptGenerator:
    """Records calls and returns canned output, or raises ``error`` when set."""

    def __init__(self) -> None:
        self.error: ScriptGenerationError | None = None
        self.calls: list[tuple[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    async def generate_script(self, transcript, video_title, options) -> GeneratedScript:
        self.calls.append(("script", options))
        self._maybe_fail()
        return sample_generated_script()

    async def generate_title_pack(self, transcript, video_title, topic=None, niche=None) -> TitlePack:
        self.calls.append(("title_pack", (topic, niche)))
        self._maybe_fail()
        return TitlePack.model_validate(
            {
                "titlePack": [
                    {"title": f"Title {i}", "reasoning": "Because", "clickability_score": 8}
                    for i in range(5)
                ],
                "thumbnailPremises": [
                    {"concept": f"Concept {i}", "visual_elements": ["face"], "contrast_type": "curiosity"}
                    for i in range(3)
                ],
            }
        )

    async def generate_remix_variations(
        self, script, video_title, target_audience, selected_hook=None, custom_instructions=None
    ) -> RemixVariations:
        self.calls.append(("remix_variations", target_audience))
        self._maybe_fail()
        return sample_remix_variations()

    async def generate_final_remix(self, script, selections, video_title=None) -> GeneratedScript:
        self.calls.append(("final_remix", selections))
        self._maybe_fail()
        return sample_generated_script(selections.title.title)


class FakeCheckoutSessions:
    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []

    def create(self, params: dict[str, Any]) -> SimpleNamespace:
        self.created.append(params)
        return SimpleNamespace(
            id=f"cs_test_{len(self.created)}",
            url=f"https://checkout.stripe.test/cs_test_{len(self.created)}",
        )


class FakeStripeClient:
    def __init__(self) -> None:
        self.checkout = SimpleNamespace(sessions=FakeCheckoutSessions())


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def make_token(sub: str, email: str | None = None, name: str | None = None) -> str:
    claims: dict[str, Any] = {"sub": sub}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return create_access_token(claims)


def auth_headers(sub: str = "user_123", email: str | None = "creator@example.com") -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub, email, 'Test Creator')}"}


@pytest.fixture
def users_repo():
    return InMemoryUsersRepository()


@pytest.fixture
def usage_logs_repo():
    return InMemoryUsageLogsRepository()


@pytest.fixture
def videos_repo():
    return InMemoryVideosRepository()


@pytest.fixture
def transcripts_repo():
    return InMemoryTranscriptsRepository()


@pytest.fixture
def scripts_repo():
    return InMemoryScriptsRepository()


@pytest.fixture
def audiences_repo():
    return InMemoryAudiencesRepository()


@pytest.fixture
def rate_limit_repo():
    return InMemoryRateLimitRepository()


@pytest.fixture
def youtube():
    return FakeYouTubeClient()


@pytest.fixture
def generator():
    return FakeScriptGenerator()


@pytest.fixture
def stripe_client():
    return FakeStripeClient()


@pytest.fixture
def stripe_gateway(stripe_client):
    return StripeGateway(
        secret_key="sk_test_123",
        webhook_secret=WEBHOOK_SECRET,
        price_to_tier=build_price_map(),
        app_base_url="https://app.scriptforge.test",
        client=stripe_client,
    )


@pytest.fixture
def client(
    users_repo,
    usage_logs_repo,
    videos_repo,
    transcripts_repo,
    scripts_repo,
    audiences_repo,
    rate_limit_repo,
    youtube,
    generator,
    stripe_gateway,
):
    overrides = {
        deps.get_users_repository: lambda: users_repo,
        deps.get_usage_logs_repository: lambda: usage_logs_repo,
        deps.get_videos_repository: lambda: videos_repo,
        deps.get_transcripts_repository: lambda: transcripts_repo,
        deps.get_scripts_repository: lambda: scripts_repo,
        deps.get_audiences_repository: lambda: audiences_repo,
        deps.get_rate_limit_repository: lambda: rate_limit_repo,
        deps.get_youtube_client: lambda: youtube,
        deps.get_script_generator: lambda: generator,
        deps.get_stripe_gateway: lambda: stripe_gateway,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
