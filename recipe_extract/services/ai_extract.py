from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from bs4 import BeautifulSoup, Comment

from recipe_extract.services.coercion import (
    CoercionOutcome,
    coerce_cookbook_response,
    coerce_web_response,
    coerce_youtube_response,
)
from recipe_extract.services.errors import NetworkTimeoutError, ServiceError
from recipe_extract.services.gemini_client import GeminiClient, ImageInput, load_json_reply, prompt_path
from recipe_extract.services.types import (
    CookbookPageRecipe,
    ExtractedRecipeData,
    ExtractionError,
    ExtractionErrorType,
    ExtractionResult,
    YouTubeExtractedRecipe,
)

logger = logging.getLogger(__name__)

MAX_HTML_CHARS = 50_000
MAX_TRANSCRIPT_CHARS = 15_000

WEB_PROMPT = prompt_path("web_recipe.txt")
YOUTUBE_PROMPT = prompt_path("youtube_recipe.txt")
COOKBOOK_PROMPT = prompt_path("cookbook_page.txt")

NOT_CONFIGURED_MESSAGE = "AI extraction is not configured"
TIMEOUT_MESSAGE = "AI extraction timed out. Please try again."

NON_CONTENT_TAGS = ["script", "style", "noscript"]
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class YouTubeExtractionOutcome:
    success: bool
    is_recipe: bool
    recipe: Optional[YouTubeExtractedRecipe] = None
    error: Optional[ExtractionError] = None


def clean_html_for_ai(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(NON_CONTENT_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    cleaned = _WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()
    return cleaned[:MAX_HTML_CHARS]


def _generate(
    client: GeminiClient | None,
    user_prompt: str,
    system_prompt_path: Path,
    image: ImageInput | None = None,
) -> tuple[Any, ExtractionError | None]:
    """Run one generation and decode its JSON reply; failures come back as a typed error."""
    if client is None:
        logger.warning("GEMINI_API_KEY not configured")
        return None, ExtractionError(ExtractionErrorType.CONFIGURATION_ERROR, NOT_CONFIGURED_MESSAGE)

    try:
        text = client.generate_json(user_prompt, system_prompt_path=system_prompt_path, image=image)
        return load_json_reply(text), None
    except NetworkTimeoutError:
        return None, ExtractionError(ExtractionErrorType.TIMEOUT, TIMEOUT_MESSAGE)
    except ServiceError as error:
        return None, error.to_error()


def _to_result(outcome: CoercionOutcome[Any]) -> ExtractionResult[Any]:
    if outcome.value is None:
        error = outcome.error
        return ExtractionResult(success=False, error=error.to_error() if error else None)
    return ExtractionResult.ok(outcome.value)


def extract_recipe_with_ai(html: str, client: GeminiClient | None) -> ExtractionResult[ExtractedRecipeData]:
    payload, error = _generate(client, "HTML Content:\n" + clean_html_for_ai(html), WEB_PROMPT)
    if error:
        return ExtractionResult(success=False, error=error)
    return _to_result(coerce_web_response(payload))


def build_youtube_prompt(video_title: str, description: str, captions_text: str | None) -> str:
    sections = [f"VIDEO TITLE: {video_title}", f"VIDEO DESCRIPTION:\n{description}"]
    transcript = (captions_text or "").strip()
    if transcript:
        sections.append(
            "VIDEO TRANSCRIPT (partial, takes priority over the description):\n"
            + transcript[:MAX_TRANSCRIPT_CHARS]
        )
    return "\n\n".join(sections)


def extract_recipe_from_youtube(
    video_title: str,
    description: str,
    captions_text: str | None,
    client: GeminiClient | None,
) -> YouTubeExtractionOutcome:
    payload, error = _generate(
        client,
        build_youtube_prompt(video_title, description, captions_text),
        YOUTUBE_PROMPT,
    )
    if error:
        return YouTubeExtractionOutcome(success=False, is_recipe=False, error=error)

    outcome = coerce_youtube_response(payload, video_title)
    if outcome.value is None:
        logger.info("No recipe extracted from video %r: %s", video_title, outcome.error)
        return YouTubeExtractionOutcome(success=True, is_recipe=False)

    return YouTubeExtractionOutcome(success=True, is_recipe=True, recipe=outcome.value)


def extract_recipe_from_image(
    image_bytes: bytes,
    mime_type: str,
    client: GeminiClient | None,
) -> ExtractionResult[CookbookPageRecipe]:
    image = ImageInput(data=image_bytes, mime_type=mime_type)
    payload, error = _generate(client, "Extract the recipe from this cookbook page.", COOKBOOK_PROMPT, image)
    if error:
        return ExtractionResult(success=False, error=error)
    return _to_result(coerce_cookbook_response(payload))
