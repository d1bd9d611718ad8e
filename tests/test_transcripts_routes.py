"""
Tests for transcript fetching, transcript reuse and the video endpoints.
"""

import asyncio

from scriptforge.domain.scripts import ScriptCreate, ScriptStatus, ScriptStyle, ScriptUpdate
from scriptforge.domain.transcripts import TranscriptSegment
from scriptforge.services.youtube import YouTubeTranscriptError

from conftest import auth_headers

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


def _seed_transcript(youtube, video_id=VIDEO_ID, title="Never Gonna Give You Up"):
    youtube.transcripts[video_id] = [
        TranscriptSegment(text="We're no strangers", offset=0.0, duration=3.0),
        TranscriptSegment(text="to love", offset=3.0, duration=2.0),
    ]
    youtube.titles[video_id] = title


def test_fetch_requires_authentication(client):
    response = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL})
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authenticated"


def test_invalid_token_is_rejected(client):
    response = client.post(
        "/v1/transcripts/fetch",
        json={"url": VIDEO_URL},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_fetch_stores_video_and_transcript(client, youtube, videos_repo, users_repo):
    _seed_transcript(youtube)

    response = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["cached"] is False
    assert data["video"]["youtube_id"] == VIDEO_ID
    assert data["video"]["title"] == "Never Gonna Give You Up"
    assert data["video"]["duration_seconds"] == 5.0
    assert data["video"]["thumbnail_url"] == f"https://img.youtube.com/vi/{VIDEO_ID}/hqdefault.jpg"
    assert data["transcript"]["segment_count"] == 2
    assert data["transcript"]["full_text"] == "We're no strangers to love"
    assert asyncio.run(videos_repo.get_by_youtube_id(VIDEO_ID, "user_123")) is not None
    assert asyncio.run(users_repo.get("user_123")).email == "creator@example.com"


def test_second_fetch_reuses_stored_transcript(client, youtube):
    _seed_transcript(youtube)
    first = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    second = client.post(
        "/v1/transcripts/fetch", json={"url": f"https://youtu.be/{VIDEO_ID}"}, headers=auth_headers()
    )

    assert second.status_code == 200
    assert second.json()["data"]["cached"] is True
    assert second.json()["data"]["video"]["id"] == first.json()["data"]["video"]["id"]
    assert youtube.fetch_calls == [VIDEO_ID]


def test_force_refresh_fetches_again(client, youtube):
    _seed_transcript(youtube)
    client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    response = client.post(
        "/v1/transcripts/fetch",
        json={"url": VIDEO_URL, "force_refresh": True},
        headers=auth_headers(),
    )
    assert response.json()["data"]["cached"] is False
    assert youtube.fetch_calls == [VIDEO_ID, VIDEO_ID]


def test_transcripts_are_scoped_per_user(client, youtube):
    _seed_transcript(youtube)
    client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers("alice"))
    response = client.post(
        "/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers("bob")
    )
    assert response.json()["data"]["cached"] is False


def test_non_youtube_url_fails_validation(client):
    response = client.post(
        "/v1/transcripts/fetch", json={"url": "https://vimeo.com/1234"}, headers=auth_headers()
    )
    assert response.status_code == 422


def test_youtube_url_without_video_id_is_bad_request(client):
    response = client.post(
        "/v1/transcripts/fetch",
        json={"url": "https://www.youtube.com/feed/trending"},
        headers=auth_headers(),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_URL"


def test_missing_transcript_maps_to_unprocessable(client, youtube):
    youtube.errors[VIDEO_ID] = YouTubeTranscriptError(
        YouTubeTranscriptError.NO_TRANSCRIPT, "No transcript is available for this video", VIDEO_ID
    )
    response = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    assert response.status_code == 422
    assert response.json()["detail"] == {
        "code": "NO_TRANSCRIPT",
        "message": "No transcript is available for this video",
    }


def test_unavailable_video_maps_to_not_found(client, youtube):
    youtube.errors[VIDEO_ID] = YouTubeTranscriptError(
        YouTubeTranscriptError.VIDEO_NOT_FOUND, "Video not found or unavailable", VIDEO_ID
    )
    response = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    assert response.status_code == 404


def test_list_and_get_videos(client, youtube):
    _seed_transcript(youtube)
    _seed_transcript(youtube, "abcdefghijk", "Second video")
    client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    client.post(
        "/v1/transcripts/fetch",
        json={"url": "https://youtu.be/abcdefghijk"},
        headers=auth_headers(),
    )

    listing = client.get("/v1/videos", params={"limit": 1}, headers=auth_headers())
    assert listing.status_code == 200
    body = listing.json()
    assert body["count"] == 1
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["has_more"] is True

    video_id = body["data"][0]["id"]
    detail = client.get(f"/v1/videos/{video_id}", headers=auth_headers())
    assert detail.status_code == 200
    assert detail.json()["data"]["transcript"]["segment_count"] == 2
    assert detail.json()["data"]["scripts"] == []

    other = client.get(f"/v1/videos/{video_id}", headers=auth_headers("someone_else"))
    assert other.status_code == 404


def test_delete_video_removes_transcript_and_scripts(
    client, youtube, videos_repo, transcripts_repo, scripts_repo
):
    _seed_transcript(youtube)
    fetched = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    video_id = fetched.json()["data"]["video"]["id"]
    video = asyncio.run(videos_repo.get_by_youtube_id(VIDEO_ID, "user_123"))
    script = asyncio.run(
        scripts_repo.create(
            "user_123",
            ScriptCreate(video_id=video.id, title="Draft", style=ScriptStyle.CASUAL, duration_min=3),
        )
    )

    response = client.delete(f"/v1/videos/{video_id}", headers=auth_headers())

    assert response.status_code == 204
    assert asyncio.run(videos_repo.get(video.id, "user_123")) is None
    assert asyncio.run(transcripts_repo.get_for_video(video.id)) is None
    assert asyncio.run(scripts_repo.get(script.id)) is None
    assert client.delete(f"/v1/videos/{video_id}", headers=auth_headers()).status_code == 404


def test_video_detail_reports_script_and_transcript_stats(client, youtube, videos_repo, scripts_repo):
    _seed_transcript(youtube)
    fetched = client.post("/v1/transcripts/fetch", json={"url": VIDEO_URL}, headers=auth_headers())
    video_id = fetched.json()["data"]["video"]["id"]
    video = asyncio.run(videos_repo.get_by_youtube_id(VIDEO_ID, "user_123"))
    for title in ("First", "Second"):
        asyncio.run(
            scripts_repo.create(
                "user_123",
                ScriptCreate(video_id=video.id, title=title, style=ScriptStyle.CASUAL, duration_min=3),
            )
        )
    done = asyncio.run(scripts_repo.list_for_video(video.id))[0]
    asyncio.run(scripts_repo.update(done.id, ScriptUpdate(status=ScriptStatus.COMPLETED)))

    stats = client.get(f"/v1/videos/{video_id}", headers=auth_headers()).json()["data"]["stats"]

    assert stats == {
        "total_scripts": 2,
        "completed_scripts": 1,
        "has_transcript": True,
        "transcript_duration": 5.0,
    }
