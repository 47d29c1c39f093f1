import re
from urllib.parse import parse_qs, urlparse

from errors import InvalidUrl, MissingVideoId

SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
LONG_HOST_SUFFIX = "youtube.com"

VIDEO_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

CANONICAL_URL_TEMPLATE = "https://www.youtube.com/watch?v={video_id}"


def normalize(raw_url) -> str:
    """
    Extracts the video id from a short (youtu.be/<id>) or long
    (youtube.com/watch?v=<id>) video link.

    Raises:
        InvalidUrl: the input is not an http(s) URL on a known video host.
        MissingVideoId: the URL is recognized but carries no id.

    Ids outside the platform charset (letters, digits, "-" and "_") are
    rejected as InvalidUrl so the canonical form always re-parses to the
    same id.
    """
    if not isinstance(raw_url, str) or not raw_url.strip():
        raise InvalidUrl(raw_url)

    try:
        parsed = urlparse(raw_url.strip())
        hostname = (parsed.hostname or "").lower()
    except ValueError as e:
        raise InvalidUrl(raw_url) from e

    if parsed.scheme not in ("http", "https") or not hostname:
        raise InvalidUrl(raw_url)

    if hostname in SHORT_HOSTS:
        segments = [segment for segment in parsed.path.split("/") if segment]
        video_id = segments[0] if segments else ""
    elif hostname == LONG_HOST_SUFFIX or hostname.endswith("." + LONG_HOST_SUFFIX):
        video_id = parse_qs(parsed.query).get("v", [""])[0]
    else:
        raise InvalidUrl(raw_url)

    video_id = video_id.strip()
    if not video_id:
        raise MissingVideoId(raw_url)
    if not is_valid_video_id(video_id):
        raise InvalidUrl(raw_url)
    return video_id


def is_valid_video_id(video_id) -> bool:
    return isinstance(video_id, str) and bool(VIDEO_ID_PATTERN.fullmatch(video_id))


def canonical_url(video_id: str) -> str:
    return CANONICAL_URL_TEMPLATE.format(video_id=video_id)


def normalize_url(raw_url) -> str:
    """Rewrites any accepted video link into the canonical long form."""
    return canonical_url(normalize(raw_url))
