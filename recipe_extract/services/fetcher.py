from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx
import yt_dlp
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from recipe_extract.services.errors import (
    FetchFailedError,
    InvalidURLError,
    NetworkTimeoutError,
    PaywallDetectedError,
)
from recipe_extract.services.ids import build_youtube_url, validate_recipe_url

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0
VTT_TIMEOUT_SECONDS = 15.0

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}

PAYWALL_INDICATORS = (
    "subscription required",
    "subscribe to continue",
    "premium content",
    "paywall",
    "sign in to read",
    "members only",
    "login to view",
    "subscriber-only",
    "create an account to",
)

VTT_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
PRIORITY_LANGUAGES = ("en", "en-US", "en-GB")
VTT_SKIP_PREFIXES = ("NOTE", "STYLE", "REGION", "WEBVTT", "Kind:", "Language:")


@dataclass(frozen=True)
class CaptionSource:
    url: str
    language: str
    extension: str


def detect_paywall(html: str) -> bool:
    lowered = html.lower()
    return any(indicator in lowered for indicator in PAYWALL_INDICATORS)


def fetch_recipe_url(
    url: str,
    timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    *,
    http_client: httpx.Client | None = None,
) -> str:
    """Download a recipe page as HTML.

    Raises InvalidURLError, FetchFailedError, NetworkTimeoutError or
    PaywallDetectedError; the web orchestrator turns them into typed results.
    """
    if not validate_recipe_url(url).valid:
        raise InvalidURLError("Invalid URL format. Please provide a valid HTTP or HTTPS URL.")

    client = http_client or httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        response = client.get(url.strip(), headers=BROWSER_HEADERS)
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, timeout) from error
    except httpx.HTTPError as error:
        raise FetchFailedError(f"Failed to fetch URL: {error}") from error
    finally:
        if http_client is None:
            client.close()

    if not response.is_success:
        raise FetchFailedError(
            f"Failed to fetch URL: HTTP {response.status_code} {response.reason_phrase}".rstrip()
        )

    html = response.text
    if detect_paywall(html):
        raise PaywallDetectedError(
            "This recipe appears to be behind a paywall. Please try a different URL."
        )
    return html


def _create_ydl_options() -> dict:
    return {
        "quiet": True,
        "noprogress": True,
        "check_formats": False,
        "skip_download": True,
        "extractor_args": {"youtube": {"player_client": ["android"]}},
    }


def _find_vtt_entry(entries: list) -> str | None:
    for item in entries:
        if isinstance(item, dict) and item.get("ext") == "vtt" and item.get("url"):
            return item.get("url")
    return None


def _pick_caption_source(submap: dict | None) -> CaptionSource | None:
    if not submap:
        return None

    for lang in PRIORITY_LANGUAGES:
        entries = submap.get(lang)
        if not entries:
            continue

        vtt_url = _find_vtt_entry(entries)
        if vtt_url:
            return CaptionSource(url=vtt_url, language=lang, extension="vtt")

    return None


def _is_vtt_content_line(line: str) -> bool:
    if not line:
        return False
    if line.startswith(VTT_SKIP_PREFIXES):
        return False
    if "-->" in line:
        return False
    if line.isdigit():
        return False
    return True


def vtt_to_plain_text(content: str) -> str:
    in_note_block = False
    text_lines: list[str] = []

    for raw_line in content.splitlines():
        stripped = raw_line.strip()

        if in_note_block:
            if not stripped:
                in_note_block = False
            continue

        if stripped.startswith("NOTE"):
            in_note_block = True
            continue

        if not _is_vtt_content_line(stripped):
            continue

        cleaned = VTT_TAG_PATTERN.sub("", stripped).strip()
        # auto captions repeat the previous cue line
        if cleaned and (not text_lines or text_lines[-1] != cleaned):
            text_lines.append(cleaned)

    joined = " ".join(text_lines)
    return WHITESPACE_PATTERN.sub(" ", joined).strip()


def _download_vtt_as_text(url: str, timeout: float = VTT_TIMEOUT_SECONDS) -> str:
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            response = client.get(url)
            response.raise_for_status()
            return vtt_to_plain_text(response.text)
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, timeout) from error
    except httpx.HTTPError as error:
        raise FetchFailedError(f"HTTP error downloading VTT: {error}") from error


def _captions_via_transcript_api(video_id: str) -> str | None:
    try:
        fetched = YouTubeTranscriptApi().fetch(video_id, languages=list(PRIORITY_LANGUAGES))
    except CouldNotRetrieveTranscript as error:
        logger.info("No transcript available for %s: %s", video_id, type(error).__name__)
        return None

    text_parts = [
        item.get("text", "").strip()
        for item in fetched.to_raw_data()
        if item.get("text")
    ]
    full_text = " ".join(text_parts).strip()
    return full_text or None


def _captions_via_ytdlp(video_id: str) -> str | None:
    try:
        with yt_dlp.YoutubeDL(_create_ydl_options()) as ydl:
            info = ydl.extract_info(build_youtube_url(video_id), download=False)
    except yt_dlp.utils.DownloadError as error:
        raise FetchFailedError(f"Error reading video subtitles: {error}") from error

    if not isinstance(info, dict):
        return None

    for key in ("subtitles", "automatic_captions"):
        source = _pick_caption_source(info.get(key))
        if not source:
            continue

        try:
            return _download_vtt_as_text(source.url) or None
        except (NetworkTimeoutError, FetchFailedError) as error:
            logger.warning("Caption track %s for %s failed: %s", source.language, video_id, error)
            continue

    return None


def fetch_transcript_text(video_id: str) -> str | None:
    """Plain-text captions for a video, or None when no track can be read.

    Errors propagate; the YouTube flow treats any failure here as "no captions".
    """
    return _captions_via_transcript_api(video_id) or _captions_via_ytdlp(video_id)
