# recipe_extract/services/ids.py
from __future__ import annotations

import math
import re
from urllib.parse import urlparse

from recipe_extract.services.types import ChannelIdentifier, UrlValidation

_VIDEO_ID = r"([A-Za-z0-9_-]{11})"

# Order matters: the first matching pattern wins.
_YT_PATTERNS = (
    re.compile(r"youtube\.com/watch\?(?:[^&]+&)*v=" + _VIDEO_ID),
    re.compile(r"youtu\.be/" + _VIDEO_ID),
    re.compile(r"youtube\.com/shorts/" + _VIDEO_ID),
    re.compile(r"youtube\.com/embed/" + _VIDEO_ID),
    re.compile(r"m\.youtube\.com/watch\?(?:[^&]+&)*v=" + _VIDEO_ID),
)
_BARE_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")

_CHANNEL_PATTERNS = (
    ("channel", re.compile(r"youtube\.com/channel/([A-Za-z0-9_-]+)")),
    ("handle", re.compile(r"youtube\.com/@([A-Za-z0-9_.-]+)")),
    ("custom", re.compile(r"youtube\.com/c/([A-Za-z0-9_.-]+)")),
)

_ISO_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_ISO_DURATION_NOCASE_RE = re.compile(_ISO_DURATION_RE.pattern, re.IGNORECASE)


def _duration_parts(duration: object, pattern: re.Pattern[str] = _ISO_DURATION_RE) -> tuple[int, int, int]:
    if not isinstance(duration, str) or not duration:
        return 0, 0, 0
    match = pattern.search(duration)
    if not match:
        return 0, 0, 0
    hours, minutes, seconds = (int(group or 0) for group in match.groups())
    return hours, minutes, seconds


def parse_iso8601_duration(duration: object) -> int:
    """Seconds in a YouTube-style duration ("PT4M13S" is 253). Unparseable input is 0."""
    hours, minutes, seconds = _duration_parts(duration)
    return hours * 3600 + minutes * 60 + seconds


def duration_to_minutes(duration: object) -> int:
    hours, minutes, seconds = _duration_parts(duration, _ISO_DURATION_NOCASE_RE)
    return hours * 60 + minutes + math.ceil(seconds / 60)


def format_duration(seconds: int) -> str:
    if seconds < 0:
        return "0:00"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def is_youtube_url(url: object) -> bool:
    if not isinstance(url, str) or not url:
        return False
    lowered = url.strip().lower()
    return "youtube.com" in lowered or "youtu.be" in lowered


def extract_video_id(url: object) -> str | None:
    if not isinstance(url, str) or not url:
        return None

    trimmed = url.strip()
    for pattern in _YT_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return match.group(1)

    if _BARE_ID_RE.match(trimmed):
        return trimmed

    return None


def is_valid_video_id(video_id: object) -> bool:
    return isinstance(video_id, str) and bool(_BARE_ID_RE.match(video_id))


def build_youtube_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def extract_channel_identifier(url: object) -> ChannelIdentifier | None:
    if not isinstance(url, str) or not url:
        return None

    trimmed = url.strip()
    for kind, pattern in _CHANNEL_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return ChannelIdentifier(type=kind, value=match.group(1))
    return None


def validate_recipe_url(url: object) -> UrlValidation:
    if not isinstance(url, str) or not url.strip():
        return UrlValidation(valid=False, error="Please enter a URL")

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return UrlValidation(valid=False, error="Please enter a valid URL")

    if not parsed.scheme:
        return UrlValidation(valid=False, error="Please enter a valid URL")
    if parsed.scheme not in ("http", "https"):
        return UrlValidation(valid=False, error="URL must start with http:// or https://")
    if not parsed.netloc:
        return UrlValidation(valid=False, error="Please enter a valid URL")

    return UrlValidation(valid=True, error=None)
