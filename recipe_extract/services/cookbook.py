from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from recipe_extract.services.ai_extract import extract_recipe_from_image
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.types import (
    DEFAULT_SERVINGS,
    CookbookPageRecipe,
    ExtractionErrorType,
    ExtractionResult,
    ParsedIngredient,
)

logger = logging.getLogger(__name__)

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic", "image/heif")
UNTITLED_RECIPE = "Untitled Recipe"


@dataclass(frozen=True)
class MergedRecipe:
    title: str
    ingredients: list[ParsedIngredient]
    instructions: list[str]
    servings: int
    prep_time: int
    cook_time: int
    page_number: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "pageNumber": self.page_number,
        }


def scan_cookbook_page(
    image_bytes: bytes,
    mime_type: str,
    client: GeminiClient | None,
) -> ExtractionResult[CookbookPageRecipe]:
    if not image_bytes:
        return ExtractionResult.fail(ExtractionErrorType.EXTRACTION_FAILED, "No image data received")
    if mime_type not in SUPPORTED_MIME_TYPES:
        return ExtractionResult.fail(
            ExtractionErrorType.EXTRACTION_FAILED, f"Unsupported image type: {mime_type}"
        )

    result = extract_recipe_from_image(image_bytes, mime_type, client)
    if not result.success:
        logger.info("Cookbook scan declined: %s", result.error)
    return result


def _first_int(numbers: Sequence[Optional[int]]) -> Optional[int]:
    for number in numbers:
        if number and number > 0:
            return number
    return None


def format_page_range(page_numbers: Sequence[Optional[str]]) -> str:
    """Render page labels as "42", "pp. 42-44" or "pp. 42, 45"."""
    pages = [page.strip() for page in page_numbers if page and page.strip()]
    if not pages:
        return ""
    if len(pages) == 1:
        return pages[0]

    numeric = sorted(int(page) for page in pages if page.isdigit())
    if len(numeric) >= 2:
        consecutive = all(later == earlier + 1 for earlier, later in zip(numeric, numeric[1:]))
        if consecutive:
            return f"pp. {numeric[0]}-{numeric[-1]}"
        return "pp. " + ", ".join(str(page) for page in numeric)

    return "pp. " + ", ".join(pages)


def merge_pages(pages: Sequence[CookbookPageRecipe]) -> MergedRecipe:
    """Combine the scans of one multi-page recipe, in scan order."""
    if not pages:
        raise ValueError("Cannot merge an empty page list")

    title = next((page.title.strip() for page in pages if page.title and page.title.strip()), UNTITLED_RECIPE)
    # 4 is the coercion default, so a stated non-default count on a later page wins
    servings = _first_int([page.servings for page in pages if page.servings != DEFAULT_SERVINGS])
    return MergedRecipe(
        title=title,
        ingredients=[ingredient for page in pages for ingredient in page.ingredients],
        instructions=[step for page in pages for step in page.instructions],
        servings=servings or DEFAULT_SERVINGS,
        prep_time=_first_int([page.prep_time for page in pages]) or 0,
        cook_time=_first_int([page.cook_time for page in pages]) or 0,
        page_number=format_page_range([page.page_number for page in pages]),
    )


def is_recipe_incomplete(page: CookbookPageRecipe) -> bool:
    """Heuristic used to suggest scanning another page."""
    ingredients, instructions = len(page.ingredients), len(page.instructions)
    if ingredients and not instructions:
        return True
    if instructions and not ingredients:
        return True
    if 0 < ingredients < 3:
        return True
    return instructions == 1
