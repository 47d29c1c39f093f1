import logging
from dataclasses import dataclass, field
from typing import Optional

import requests

import config
from errors import FormatUnavailable, NoTrackFound, UpstreamError, UpstreamTimeout
from upstream import run_blocking
from url_normalizer import canonical_url

logger = logging.getLogger(__name__)

SUMMARY_FORMATS = ("txt",)
TIMECODE_FORMATS = ("srt", "vtt")


@dataclass
class SubtitleTrack:
    language: str
    formats: dict[str, str] = field(default_factory=dict)

    def url_for(self, format_name: str) -> Optional[str]:
        return self.formats.get(format_name)


@dataclass
class Transcript:
    text: str
    meta: dict
    track: SubtitleTrack
    format: str


# --- Response parsing ---
# The extraction service answers with video metadata at the top level and a
# list of subtitle tracks. Tracks may list their formats either as a mapping
# ({"srt": url}) or as a list ([{"format": "srt", "url": url}]).


def _parse_formats(raw) -> dict[str, str]:
    if isinstance(raw, dict):
        return {str(k).lower(): v for k, v in raw.items() if v}
    formats = {}
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        name = item.get("format") or item.get("ext")
        url = item.get("url")
        if name and url:
            formats.setdefault(str(name).lower(), url)
    return formats


def parse_tracks(payload: dict) -> list[SubtitleTrack]:
    raw_tracks = payload.get("subtitles") or []
    if isinstance(raw_tracks, dict):
        raw_tracks = raw_tracks.get("items") or []

    tracks = []
    for raw in raw_tracks:
        if not isinstance(raw, dict):
            continue
        language = raw.get("language") or raw.get("name") or ""
        tracks.append(
            SubtitleTrack(
                language=str(language),
                formats=_parse_formats(raw.get("formats") or raw.get("urls")),
            )
        )
    return tracks


def _thumbnail_url(raw) -> Optional[str]:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list) and raw:
        last = raw[-1]  # largest resolution comes last
        if isinstance(last, dict):
            return last.get("url")
    return None


def parse_metadata(payload: dict) -> dict:
    return {
        "title": payload.get("title"),
        "description": payload.get("description"),
        "author": payload.get("author") or payload.get("channel"),
        "thumbnail": _thumbnail_url(payload.get("thumbnail") or payload.get("thumbnails")),
        "publishDate": payload.get("publishDate") or payload.get("publishedAt"),
    }


def select_track(
    tracks: list[SubtitleTrack],
    video_id: str,
    primary: str = config.PRIMARY_LANGUAGE,
    fallback: str = config.FALLBACK_LANGUAGE,
) -> SubtitleTrack:
    """
    Picks the first track whose language tag contains the primary
    preference, else the first containing the fallback preference.
    """
    for preference in (primary, fallback):
        needle = (preference or "").strip().lower()
        if not needle:
            # an empty needle would match every track
            continue
        for track in tracks:
            if needle in track.language.lower():
                return track
    raise NoTrackFound(video_id, (primary, fallback))


def select_format(track: SubtitleTrack, video_id: str, formats) -> tuple[str, str]:
    for format_name in formats:
        url = track.url_for(format_name)
        if url:
            return format_name, url
    raise FormatUnavailable(video_id, formats)


# --- Public API ---


class SubtitleClient:
    """Client for the external subtitle extraction service."""

    def __init__(
        self,
        api_url: str = config.SUBTITLES_API_URL,
        api_key: Optional[str] = config.SUBTITLES_API_KEY,
        api_host: Optional[str] = config.SUBTITLES_API_HOST,
        timeout: float = config.SUBTITLES_TIMEOUT_SECONDS,
        primary_language: str = config.PRIMARY_LANGUAGE,
        fallback_language: str = config.FALLBACK_LANGUAGE,
        session=None,
    ):
        self.api_url = api_url
        self.timeout = timeout
        self.primary_language = primary_language
        self.fallback_language = fallback_language
        self.session = session or requests.Session()
        self.headers = {}
        if api_key:
            self.headers["X-RapidAPI-Key"] = api_key
        if api_host:
            self.headers["X-RapidAPI-Host"] = api_host

    def _get(self, url: str, **kwargs):
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()  # 4xx/5xx from the collaborator
        except requests.Timeout as e:
            raise UpstreamTimeout("Subtitle service", self.timeout) from e
        except requests.RequestException as e:
            raise UpstreamError(f"Subtitle service request failed: {e}") from e
        return response

    def list_subtitles(self, video_id: str) -> dict:
        if not self.api_url:
            raise UpstreamError("SUBTITLES_API_URL is not configured")
        response = self._get(
            self.api_url,
            params={"url": canonical_url(video_id)},
            headers=self.headers,
        )
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("Subtitle service returned malformed JSON") from e
        if not isinstance(payload, dict):
            raise UpstreamError("Subtitle service returned an unexpected payload")
        return payload

    def download(self, url: str) -> str:
        return self._get(url).text

    def fetch_transcript_sync(self, video_id: str, formats=SUMMARY_FORMATS) -> Transcript:
        payload = self.list_subtitles(video_id)
        tracks = parse_tracks(payload)
        logger.info(
            f"Found {len(tracks)} subtitle tracks for {video_id}: "
            f"{[track.language for track in tracks]}"
        )

        track = select_track(
            tracks, video_id, self.primary_language, self.fallback_language
        )
        format_name, url = select_format(track, video_id, formats)
        logger.info(f"Using '{track.language}' {format_name} subtitles for {video_id}")

        return Transcript(
            text=self.download(url),
            meta=parse_metadata(payload),
            track=track,
            format=format_name,
        )

    async def fetch_transcript(self, video_id: str, formats=SUMMARY_FORMATS) -> Transcript:
        """
        Fetches the subtitle text of a video in the first available format.

        Each of the two network calls is bounded by the client timeout, so the
        overall wait is bounded by twice that value.

        Raises:
            NoTrackFound, FormatUnavailable, UpstreamError, UpstreamTimeout
        """
        return await run_blocking(
            "Subtitle service",
            self.timeout * 2,
            self.fetch_transcript_sync,
            video_id,
            formats,
        )
