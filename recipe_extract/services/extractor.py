from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from recipe_extract.services.ai_extract import extract_recipe_with_ai
from recipe_extract.services.errors import NetworkTimeoutError, ServiceError
from recipe_extract.services.fetcher import fetch_recipe_url
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.ids import validate_recipe_url
from recipe_extract.services.jsonld import parse_json_ld_recipe
from recipe_extract.services.microdata import parse_microdata_recipe
from recipe_extract.services.types import (
    ExtractedRecipeData,
    ExtractionErrorType,
    ExtractionResult,
)

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_MESSAGE = "Request timed out. The website took too long to respond. Please try again."

Fetcher = Callable[[str], str]


@dataclass(frozen=True)
class Attempt:
    """One deterministic extraction tier: html in, recipe or None out."""
    name: str
    parse: Callable[[str], Optional[ExtractedRecipeData]]


DEFAULT_ATTEMPTS: tuple[Attempt, ...] = (
    Attempt("jsonld", parse_json_ld_recipe),
    Attempt("microdata", parse_microdata_recipe),
)


def run_attempts(html: str, attempts: Sequence[Attempt]) -> ExtractedRecipeData | None:
    for attempt in attempts:
        try:
            recipe = attempt.parse(html)
        except Exception:
            logger.exception("%s parsing failed, trying next method", attempt.name)
            continue
        if recipe is not None:
            logger.info("Recipe extracted via %s", attempt.name)
            return recipe
        logger.info("No %s recipe found, trying next method", attempt.name)
    return None


def _fetch_failure(url: str, error: ServiceError) -> ExtractionResult[ExtractedRecipeData]:
    if isinstance(error, NetworkTimeoutError):
        return ExtractionResult.fail(ExtractionErrorType.TIMEOUT, FETCH_TIMEOUT_MESSAGE, source_url=url)
    return ExtractionResult(success=False, error=error.to_error(), source_url=url)


def extract_recipe_from_url(
    url: str,
    *,
    fetch: Fetcher = fetch_recipe_url,
    client: GeminiClient | None = None,
    attempts: Sequence[Attempt] = DEFAULT_ATTEMPTS,
) -> ExtractionResult[ExtractedRecipeData]:
    validation = validate_recipe_url(url)
    if not validation.valid:
        return ExtractionResult.fail(
            ExtractionErrorType.INVALID_URL,
            validation.error or "Please enter a valid URL",
            source_url=url,
        )

    try:
        html = fetch(url)
    except ServiceError as error:
        logger.warning("Fetching %s failed: %s", url, error)
        return _fetch_failure(url, error)

    if not html:
        return ExtractionResult.fail(
            ExtractionErrorType.FETCH_FAILED, "Failed to fetch URL content", source_url=url
        )

    recipe = run_attempts(html, attempts)
    if recipe is not None:
        return ExtractionResult.ok(recipe, source_url=url)

    logger.info("Falling back to AI extraction for %s", url)
    try:
        result = extract_recipe_with_ai(html, client)
    except Exception as error:
        logger.exception("AI extraction raised for %s", url)
        return ExtractionResult.fail(
            ExtractionErrorType.EXTRACTION_FAILED,
            f"AI extraction error: {error}",
            source_url=url,
        )

    if result.success and result.data is not None:
        return result.with_source(url)
    if result.error is None:
        return ExtractionResult.fail(
            ExtractionErrorType.EXTRACTION_FAILED,
            "AI extraction failed to find recipe data",
            source_url=url,
        )
    return result.with_source(url)
