"""
YouTube helpers

Parses video identifiers out of the many URL shapes YouTube uses, builds
canonical watch / thumbnail URLs, looks up titles via oEmbed (falling back to
the watch page markup) and downloads caption tracks through
``youtube-transcript-api``.
"""

from __future__ import annotations

import html
import re
from typing import Any, Iterable, Optional
from urllib.parse import parse_qs, urlparse

import httpx
import structlog
from anyio import to_thread
from pydantic import BaseModel
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
    YouTubeTranscriptApi,
)

from ..core.config import get_settings
from ..domain.transcripts import TranscriptSegment

logger = structlog.get_logger()

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

# Ordered from most to least common URL shape.
YOUTUBE_URL_PATTERNS = [
    re.compile(r"(?:https?://)?(?:www\.|m\.|music\.)?youtube\.com/watch\?(?:.*&)?v=([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.)?youtu\.be/([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/embed/([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/shorts/([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/v/([A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/live/([A-Za-z0-9_-]{11})"),
]

THUMBNAIL_QUALITIES = {
    "default": "default",
    "medium": "mqdefault",
    "high": "hqdefault",
    "standard": "sddefault",
    "maxres": "maxresdefault",
}

OEMBED_URL = "https://www.youtube.com/oembed"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

_META_TITLE = re.compile(r'<meta\s+name="title"\s+content="([^"]*)"', re.IGNORECASE)
_HTML_TITLE = re.compile(r"<title>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class YouTubeTranscriptError(Exception):
    """Transcript retrieval failure with a machine readable code."""

    INVALID_URL = "INVALID_URL"
    NO_TRANSCRIPT = "NO_TRANSCRIPT"
    FETCH_ERROR = "FETCH_ERROR"
    PRIVATE_VIDEO = "PRIVATE_VIDEO"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"

    def __init__(self, code: str, message: str, video_id: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.video_id = video_id


class TranscriptResult(BaseModel):
    video_id: str
    segments: list[TranscriptSegment]
    language: str
    total_duration: float
    full_text: str


def is_valid_video_id(video_id: str | None) -> bool:
    return bool(video_id) and VIDEO_ID_PATTERN.match(video_id) is not None


def extract_video_id(url: str | None) -> Optional[str]:
    """
    Pull the 11 character video id out of a YouTube URL.

    Handles watch, youtu.be, embed, v, shorts, live, mobile and music URLs, and
    falls back to a ``v`` query parameter on any youtube.com / youtu.be host.
    Returns None when nothing usable is found.
    """
    if not url:
        return None
    url = url.strip()

    for pattern in YOUTUBE_URL_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)

    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    if host.endswith("youtube.com") or host.endswith("youtu.be"):
        candidates = parse_qs(parsed.query).get("v", [])
        if candidates and is_valid_video_id(candidates[0]):
            return candidates[0]

    logger.debug("youtube.video_id_not_found", url=url[:80])
    return None


def construct_watch_url(video_id: str) -> Optional[str]:
    if not is_valid_video_id(video_id):
        return None
    return WATCH_URL.format(video_id=video_id)


def construct_thumbnail_url(video_id: str, quality: str = "high") -> Optional[str]:
    if not is_valid_video_id(video_id):
        return None
    filename = THUMBNAIL_QUALITIES.get(quality, THUMBNAIL_QUALITIES["high"])
    return f"https://img.youtube.com/vi/{video_id}/{filename}.jpg"


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


def format_timestamp(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def format_transcript(
    segments: Iterable[TranscriptSegment], include_timestamps: bool = True
) -> str:
    """Render segments as ``[m:ss] text`` lines, or as one paragraph."""

    segments = list(segments)
    if not include_timestamps:
        return collapse_whitespace(" ".join(segment.text for segment in segments))
    return "\n".join(
        f"[{format_timestamp(segment.offset)}] {segment.text.strip()}" for segment in segments
    )


def parse_title_from_html(markup: str) -> Optional[str]:
    match = _META_TITLE.search(markup)
    if match and match.group(1).strip():
        return html.unescape(match.group(1)).strip()
    match = _HTML_TITLE.search(markup)
    if match:
        title = html.unescape(match.group(1)).strip()
        if title.endswith(" - YouTube"):
            title = title[: -len(" - YouTube")].strip()
        if title and title != "YouTube":
            return title
    return None


def fallback_title(video_id: str) -> str:
    return f"YouTube Video (ID: {video_id})"


class YouTubeClient:
    """Fetches titles over HTTP and caption tracks through youtube-transcript-api."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        transcript_api: YouTubeTranscriptApi | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._http_client = http_client
        self._transcript_api = transcript_api
        self._timeout = timeout_seconds or get_settings().youtube_http_timeout_seconds

    def _api(self) -> YouTubeTranscriptApi:
        if self._transcript_api is None:
            self._transcript_api = YouTubeTranscriptApi()
        return self._transcript_api

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"User-Agent": "Mozilla/5.0 (compatible; ScriptForge/1.0)"}
        if self._http_client is not None:
            return await self._http_client.get(url, headers=headers, **kwargs)
        async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
            return await client.get(url, headers=headers, **kwargs)

    async def fetch_title(self, video_id: str) -> str:
        """Best-effort title lookup; never raises."""

        watch_url = WATCH_URL.format(video_id=video_id)
        try:
            response = await self._get(OEMBED_URL, params={"url": watch_url, "format": "json"})
            if response.status_code == 200:
                title = (response.json().get("title") or "").strip()
                if title:
                    logger.info("youtube.oembed_success", video_id=video_id)
                    return title
            logger.info("youtube.oembed_miss", video_id=video_id, status=response.status_code)

            response = await self._get(watch_url, follow_redirects=True)
            if response.status_code == 200:
                title = parse_title_from_html(response.text)
                if title:
                    return title
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("youtube.title_fetch_failed", video_id=video_id, error=str(exc))
        return fallback_title(video_id)

    def _load_transcript(
        self, video_id: str, language: str | None
    ) -> tuple[str, list[Any]]:
        """Blocking fetch; returns the language code and raw snippets."""

        transcript_list = self._api().list(video_id)
        if language:
            transcript = transcript_list.find_transcript([language])
        else:
            try:
                transcript = transcript_list.find_transcript(["en"])
            except NoTranscriptFound:
                available = list(transcript_list)
                if not available:
                    raise
                transcript = available[0]
        fetched = transcript.fetch()
        return fetched.language_code, list(fetched)

    async def fetch_transcript(
        self, url_or_id: str, language: str | None = None
    ) -> TranscriptResult:
        video_id = url_or_id if is_valid_video_id(url_or_id) else extract_video_id(url_or_id)
        if not video_id:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.INVALID_URL, "Invalid YouTube URL or video ID"
            )

        try:
            language_code, snippets = await to_thread.run_sync(
                self._load_transcript, video_id, language
            )
        except TranscriptsDisabled as exc:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.NO_TRANSCRIPT,
                "Transcripts are disabled for this video",
                video_id,
            ) from exc
        except NoTranscriptFound as exc:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.NO_TRANSCRIPT,
                "No transcript is available for this video"
                + (f" in language '{language}'" if language else ""),
                video_id,
            ) from exc
        except VideoUnavailable as exc:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.VIDEO_NOT_FOUND,
                "Video not found or unavailable",
                video_id,
            ) from exc
        except CouldNotRetrieveTranscript as exc:
            code = YouTubeTranscriptError.FETCH_ERROR
            if "private" in str(exc).lower():
                code = YouTubeTranscriptError.PRIVATE_VIDEO
            raise YouTubeTranscriptError(
                code, "Could not retrieve the transcript from YouTube", video_id
            ) from exc

        segments = [
            TranscriptSegment(
                text=snippet.text,
                offset=float(snippet.start),
                duration=float(snippet.duration),
                lang=language_code,
            )
            for snippet in snippets
            if snippet.text and snippet.text.strip()
        ]
        if not segments:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.NO_TRANSCRIPT, "Transcript is empty", video_id
            )

        result = TranscriptResult(
            video_id=video_id,
            segments=segments,
            language=language_code or language or "en",
            total_duration=max(segment.offset + segment.duration for segment in segments),
            full_text=collapse_whitespace(" ".join(segment.text for segment in segments)),
        )
        logger.info(
            "youtube.transcript_fetched",
            video_id=video_id,
            language=result.language,
            segments=len(segments),
        )
        return result

    async def available_languages(self, url_or_id: str) -> list[str]:
        video_id = url_or_id if is_valid_video_id(url_or_id) else extract_video_id(url_or_id)
        if not video_id:
            raise YouTubeTranscriptError(
                YouTubeTranscriptError.INVALID_URL, "Invalid YouTube URL or video ID"
            )

        def _list() -> list[str]:
            return [transcript.language_code for transcript in self._api().list(video_id)]

        try:
            return await to_thread.run_sync(_list)
        except CouldNotRetrieveTranscript as exc:
            logger.warning("youtube.languages_unavailable", video_id=video_id, error=str(exc))
            return []
