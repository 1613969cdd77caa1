"""
Validation of untyped generative-model replies.

Each response shape has its own coercer returning a CoercionOutcome; the
category / confidence / number helpers are shared so every call site
normalizes the same way.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from recipe_extract.services.types import (
    CONFIDENCE_FIELDS,
    DEFAULT_QUANTITY,
    DEFAULT_SERVINGS,
    DEFAULT_UNIT,
    Confidence,
    CookbookPageRecipe,
    ExtractedRecipeData,
    ExtractionError,
    ExtractionErrorType,
    ExtractionMethod,
    IngredientCategory,
    ParsedIngredient,
    RawIngredient,
    YouTubeExtractedRecipe,
)

T = TypeVar("T")

_CATEGORIES = {category.value: category for category in IngredientCategory}
_CONFIDENCES = {confidence.value: confidence for confidence in Confidence}
_DECLINED_COOKBOOK_KINDS = {
    ExtractionErrorType.NOT_A_RECIPE.value: ExtractionErrorType.NOT_A_RECIPE,
    ExtractionErrorType.POOR_QUALITY.value: ExtractionErrorType.POOR_QUALITY,
    ExtractionErrorType.NO_RECIPE_FOUND.value: ExtractionErrorType.NO_RECIPE_FOUND,
}
NO_RECIPE_MESSAGE = "No recipe found in the content"


@dataclass(frozen=True)
class CoercionError:
    type: ExtractionErrorType
    message: str

    def to_error(self) -> ExtractionError:
        return ExtractionError(type=self.type, message=self.message)


@dataclass(frozen=True)
class CoercionOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[CoercionError] = None

    @property
    def ok(self) -> bool:
        return self.value is not None


def _failure(error_type: ExtractionErrorType, message: str) -> CoercionOutcome[Any]:
    return CoercionOutcome(value=None, error=CoercionError(type=error_type, message=message))


def _no_recipe(message: str = NO_RECIPE_MESSAGE) -> CoercionOutcome[Any]:
    return _failure(ExtractionErrorType.NO_RECIPE_FOUND, message)


def normalize_category(value: object) -> IngredientCategory:
    if isinstance(value, str):
        return _CATEGORIES.get(value.strip().lower(), IngredientCategory.OTHER)
    return IngredientCategory.OTHER


def normalize_confidence(value: object) -> Confidence:
    if isinstance(value, str):
        return _CONFIDENCES.get(value.strip().lower(), Confidence.LOW)
    return Confidence.LOW


def coerce_number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or math.isinf(value) or value < 0:
        return default
    return value


def coerce_minutes(value: object) -> int:
    return int(round(coerce_number(value, 0)))


def coerce_servings(value: object) -> int:
    servings = int(round(coerce_number(value, DEFAULT_SERVINGS)))
    return servings if servings > 0 else DEFAULT_SERVINGS


def clean_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def clean_text_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    cleaned: list[str] = []
    for item in value:
        text = clean_str(item)
        if text:
            cleaned.append(text)
    return cleaned


def coerce_parsed_ingredient(entry: object, fallback_name: str | None = None) -> ParsedIngredient | None:
    if not isinstance(entry, dict):
        return None
    name = clean_str(entry.get("name")) or fallback_name
    if not name:
        return None
    return ParsedIngredient(
        name=name,
        quantity=coerce_number(entry.get("quantity"), DEFAULT_QUANTITY),
        unit=clean_str(entry.get("unit")) or DEFAULT_UNIT,
        category=normalize_category(entry.get("category")),
    )


def _coerce_raw_ingredient(entry: object) -> RawIngredient | None:
    if isinstance(entry, str):
        text = entry.strip()
        return RawIngredient(raw=text, parsed=None) if text else None
    if not isinstance(entry, dict):
        return None

    raw = clean_str(entry.get("raw"))
    parsed_source = entry.get("parsed") if isinstance(entry.get("parsed"), dict) else None
    if parsed_source is None and "name" in entry:
        parsed_source = entry

    parsed = coerce_parsed_ingredient(parsed_source, fallback_name=raw) if parsed_source else None
    raw = raw or (parsed.name if parsed else None)
    if not raw:
        return None
    return RawIngredient(raw=raw, parsed=parsed)


def _coerce_parsed_list(value: object) -> list[ParsedIngredient]:
    if not isinstance(value, list):
        return []
    ingredients: list[ParsedIngredient] = []
    for entry in value:
        if isinstance(entry, str):
            entry = {"name": entry}
        parsed = coerce_parsed_ingredient(entry)
        if parsed:
            ingredients.append(parsed)
    return ingredients


def _coerce_confidence_map(value: object) -> dict[str, Confidence]:
    source = value if isinstance(value, dict) else {}
    return {key: normalize_confidence(source.get(key)) for key in CONFIDENCE_FIELDS}


def _declines_recipe(data: dict[str, Any]) -> bool:
    return data.get("error") == ExtractionErrorType.NO_RECIPE_FOUND.value or data.get("isRecipe") is False


def coerce_web_response(payload: object) -> CoercionOutcome[ExtractedRecipeData]:
    if not isinstance(payload, dict) or _declines_recipe(payload):
        return _no_recipe("No recipe found in the page content")

    title = clean_str(payload.get("title"))
    if not title:
        return _no_recipe("No recipe found in the page content")

    raw_entries = payload.get("ingredients") if isinstance(payload.get("ingredients"), list) else []
    ingredients = [item for item in map(_coerce_raw_ingredient, raw_entries) if item is not None]
    instructions = clean_text_list(payload.get("instructions"))
    if not ingredients and not instructions:
        return _no_recipe("No ingredients or instructions found in the page content")

    return CoercionOutcome(
        value=ExtractedRecipeData(
            title=title,
            image_url=clean_str(payload.get("imageUrl")),
            ingredients=ingredients,
            instructions=instructions,
            servings=coerce_servings(payload.get("servings")),
            prep_time=coerce_minutes(payload.get("prepTime")),
            cook_time=coerce_minutes(payload.get("cookTime")),
            confidence=_coerce_confidence_map(payload.get("confidence")),
            extraction_method=ExtractionMethod.AI,
        )
    )


def coerce_youtube_response(payload: object, video_title: str) -> CoercionOutcome[YouTubeExtractedRecipe]:
    if not isinstance(payload, dict) or _declines_recipe(payload):
        return _no_recipe("This video does not appear to contain a recipe")

    title = clean_str(payload.get("title")) or clean_str(video_title)
    if not title:
        return _no_recipe("This video does not appear to contain a recipe")

    ingredients = _coerce_parsed_list(payload.get("ingredients"))
    instructions = clean_text_list(payload.get("instructions"))
    if not ingredients and not instructions:
        return _no_recipe("No ingredients or steps could be found in this video")

    return CoercionOutcome(
        value=YouTubeExtractedRecipe(
            title=title,
            ingredients=ingredients,
            instructions=instructions,
            servings=coerce_servings(payload.get("servings")),
            prep_time=coerce_minutes(payload.get("prepTime")),
            cook_time=coerce_minutes(payload.get("cookTime")),
            confidence=normalize_confidence(payload.get("confidence")),
            extraction_notes=clean_str(payload.get("extractionNotes")),
        )
    )


def _page_number(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return clean_str(value)


def coerce_cookbook_response(payload: object) -> CoercionOutcome[CookbookPageRecipe]:
    if not isinstance(payload, dict):
        return _failure(ExtractionErrorType.EXTRACTION_FAILED, "Failed to parse AI response")

    if payload.get("success") is False:
        kind = _DECLINED_COOKBOOK_KINDS.get(
            str(payload.get("error") or ""), ExtractionErrorType.EXTRACTION_FAILED
        )
        message = clean_str(payload.get("message")) or "Failed to extract recipe"
        return _failure(kind, message)

    title = clean_str(payload.get("title"))
    if not title:
        return _no_recipe("Could not extract recipe title")

    ingredients = _coerce_parsed_list(payload.get("ingredients"))
    instructions = clean_text_list(payload.get("instructions"))
    if not ingredients and not instructions:
        return _no_recipe("No ingredients or instructions found on this page")

    return CoercionOutcome(
        value=CookbookPageRecipe(
            title=title,
            ingredients=ingredients,
            instructions=instructions,
            servings=coerce_servings(payload.get("servings")),
            prep_time=coerce_minutes(payload.get("prepTime")),
            cook_time=coerce_minutes(payload.get("cookTime")),
            page_number=_page_number(payload.get("pageNumber")),
        )
    )
