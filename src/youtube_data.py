import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

import config
from errors import NotFound, UpstreamError
from upstream import run_blocking

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_duration(iso_duration: str) -> float:
    """ISO 8601 duration (PT1H2M3S) to minutes."""
    match = DURATION_PATTERN.match(iso_duration or "")
    if not match:
        return 0.0
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours * 60 + minutes + seconds / 60


def _published_at(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        published = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return published


def summarize_video(item: dict, now: Optional[datetime] = None) -> dict:
    snippet = item.get("snippet", {})
    stats = item.get("statistics", {})
    details = item.get("contentDetails", {})
    thumbnails = snippet.get("thumbnails") or {}

    views = int(stats.get("viewCount", 0))
    likes = int(stats.get("likeCount", 0))
    comments = int(stats.get("commentCount", 0))
    engagement = (likes + comments) / views * 100 if views else 0.0

    now = now or datetime.now(timezone.utc)
    published = _published_at(snippet.get("publishedAt"))
    age_days = (now - published).total_seconds() / 86400 if published else 1
    avg_views_per_day = views / max(age_days, 1)

    return {
        "channelTitle": snippet.get("channelTitle"),
        "title": snippet.get("title"),
        "description": snippet.get("description"),
        "thumbnail": (thumbnails.get("medium") or {}).get("url"),
        "language": snippet.get("defaultAudioLanguage") or snippet.get("defaultLanguage"),
        "publishedAt": snippet.get("publishedAt"),
        "duration": round(parse_duration(details.get("duration")), 2),
        "views": views,
        "likes": likes,
        "comments": comments,
        "engagement": round(engagement, 2),
        "avgViewsPerDay": round(avg_views_per_day),
        "category": snippet.get("categoryId"),
    }


class YouTubeDataClient:
    """Thin wrapper over the YouTube Data API v3."""

    def __init__(
        self,
        api_key: Optional[str] = config.YOUTUBE_API_KEY,
        timeout: float = config.YOUTUBE_TIMEOUT_SECONDS,
        service=None,
    ):
        self.timeout = timeout
        self._service = service
        self._api_key = api_key

    @property
    def service(self):
        if self._service is None:
            if not self._api_key:
                raise UpstreamError("YOUTUBE_API_KEY is not configured")
            self._service = build(
                "youtube", "v3", developerKey=self._api_key, cache_discovery=False
            )
        return self._service

    def _execute(self, request) -> dict:
        try:
            return request.execute()
        except HttpError as e:
            logger.error(f"YouTube Data API error: {e}")
            raise UpstreamError(f"YouTube Data API request failed: {e}") from e

    def get_video_sync(self, video_id: str) -> dict:
        response = self._execute(
            self.service.videos().list(
                part="snippet,statistics,contentDetails", id=video_id
            )
        )
        items = response.get("items") or []
        if not items:
            raise NotFound(f"No video found for ID: {video_id}")
        return items[0]

    def search_recent_sync(
        self, query: str, days: int = 7, max_results: int = 20, region_code: str = "RU"
    ) -> list[dict]:
        published_after = (datetime.now(timezone.utc) - timedelta(days=days)).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )
        search = self._execute(
            self.service.search().list(
                part="snippet",
                q=query,
                maxResults=max_results,
                order="viewCount",
                publishedAfter=published_after,
                type="video",
                regionCode=region_code,
            )
        )
        video_ids = [
            item["id"]["videoId"]
            for item in search.get("items", [])
            if item.get("id", {}).get("videoId")
        ]
        if not video_ids:
            return []

        details = self._execute(
            self.service.videos().list(
                part="contentDetails,statistics,snippet", id=",".join(video_ids)
            )
        )
        return [
            {
                "id": item.get("id"),
                "snippet": item.get("snippet"),
                "statistics": item.get("statistics"),
                "contentDetails": item.get("contentDetails"),
            }
            for item in details.get("items", [])
        ]

    async def get_video(self, video_id: str) -> dict:
        return await run_blocking("YouTube Data API", self.timeout, self.get_video_sync, video_id)

    async def search_recent(self, query: str, days: int = 7) -> list[dict]:
        return await run_blocking(
            "YouTube Data API", self.timeout, self.search_recent_sync, query, days
        )
