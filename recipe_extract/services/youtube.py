from __future__ import annotations

import logging
from typing import Any

import httpx

from recipe_extract.services.errors import (
    ConfigurationError,
    FetchFailedError,
    InvalidVideoIdError,
    NetworkTimeoutError,
    QuotaExceededError,
)
from recipe_extract.services.ids import format_duration, is_valid_video_id, parse_iso8601_duration
from recipe_extract.services.quota import QUOTA_COSTS, QuotaCounter
from recipe_extract.services.types import VideoMetadata

logger = logging.getLogger(__name__)

VIDEOS_ENDPOINT = "https://www.googleapis.com/youtube/v3/videos"
DEFAULT_TIMEOUT_SECONDS = 30.0
THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")

QUOTA_EXCEEDED_MESSAGE = "YouTube API quota exceeded. Please try again later."
VIDEO_NOT_FOUND_MESSAGE = "Video not found. It may be private, deleted, or the ID is incorrect."


def best_thumbnail_url(thumbnails: Any) -> str:
    if not isinstance(thumbnails, dict):
        return ""
    for size in THUMBNAIL_PREFERENCE:
        entry = thumbnails.get(size)
        if isinstance(entry, dict) and entry.get("url"):
            return entry["url"]
    return ""


def _view_count(statistics: Any) -> int:
    raw = statistics.get("viewCount") if isinstance(statistics, dict) else None
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0


def _to_metadata(video_id: str, item: dict[str, Any]) -> VideoMetadata:
    snippet = item.get("snippet") or {}
    details = item.get("contentDetails") or {}
    duration_seconds = parse_iso8601_duration(details.get("duration"))
    return VideoMetadata(
        video_id=item.get("id") or video_id,
        title=snippet.get("title") or "",
        description=snippet.get("description") or "",
        thumbnail_url=best_thumbnail_url(snippet.get("thumbnails")),
        duration=format_duration(duration_seconds),
        duration_seconds=duration_seconds,
        view_count=_view_count(item.get("statistics")),
        published_at=snippet.get("publishedAt"),
        channel_id=snippet.get("channelId"),
        channel_title=snippet.get("channelTitle"),
    )


class YouTubeClient:
    """YouTube Data API v3 over httpx, charging every call to the injected quota counter."""

    def __init__(
        self,
        api_key: str | None,
        quota: QuotaCounter,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._quota = quota
        self.timeout = timeout
        self._http = http_client

    def _get(self, params: dict[str, str]) -> httpx.Response:
        client = self._http or httpx.Client(timeout=self.timeout)
        try:
            return client.get(VIDEOS_ENDPOINT, params=params, headers={"Accept": "application/json"})
        except httpx.TimeoutException as error:
            raise NetworkTimeoutError(VIDEOS_ENDPOINT, self.timeout) from error
        except httpx.HTTPError as error:
            raise FetchFailedError(f"YouTube API request failed: {error}") from error
        finally:
            if self._http is None:
                client.close()

    def fetch_video_metadata(self, video_id: str) -> VideoMetadata:
        if not is_valid_video_id(video_id):
            raise InvalidVideoIdError("Invalid YouTube video ID format")
        if not self._api_key:
            logger.warning("YOUTUBE_API_KEY not configured")
            raise ConfigurationError("YouTube API is not configured")

        cost = QUOTA_COSTS["VIDEOS_LIST"]
        if not self._quota.check_quota(cost):
            raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)

        response = self._get(
            {"id": video_id, "part": "snippet,contentDetails,statistics", "key": self._api_key}
        )
        self._quota.record_usage(cost, "videos.list")

        if response.status_code == 403:
            logger.error("YouTube API 403: %.300s", response.text)
            raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)
        if not response.is_success:
            logger.error("YouTube API error %d: %.300s", response.status_code, response.text)
            raise FetchFailedError(f"YouTube API request failed: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as error:
            raise FetchFailedError("YouTube API returned an unreadable response") from error

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            raise FetchFailedError(payload["error"].get("message") or "YouTube API request failed")

        items = payload.get("items") if isinstance(payload, dict) else None
        if not items or not isinstance(items[0], dict):
            raise InvalidVideoIdError(VIDEO_NOT_FOUND_MESSAGE)

        return _to_metadata(video_id, items[0])
