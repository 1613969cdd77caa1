from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from bs4 import BeautifulSoup

from recipe_extract.services.ids import duration_to_minutes
from recipe_extract.services.types import (
    DEFAULT_SERVINGS,
    Confidence,
    ExtractedRecipeData,
    ExtractionMethod,
    RawIngredient,
)

logger = logging.getLogger(__name__)

FIRST_INTEGER_PATTERN = re.compile(r"(\d+)")
STEP_SPLIT_PATTERN = re.compile(r"(?:^|(?<=\s))\d+[.)]\s+|\n+")


def _is_recipe_type(item: dict[str, Any]) -> bool:
    item_type = item.get("@type")
    if isinstance(item_type, list):
        return "Recipe" in item_type
    return item_type == "Recipe"


def _candidate_items(data: Any) -> list[dict[str, Any]]:
    items = data if isinstance(data, list) else [data]
    candidates: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        candidates.append(item)
        graph = item.get("@graph")
        if isinstance(graph, list):
            candidates.extend(entry for entry in graph if isinstance(entry, dict))
    return candidates


def _extract_image_url(image: Any) -> str | None:
    if isinstance(image, str):
        return image.strip() or None
    if isinstance(image, dict):
        return _extract_image_url(image.get("url"))
    if isinstance(image, list) and image:
        return _extract_image_url(image[0])
    return None


def _extract_ingredients(recipe: dict[str, Any]) -> list[RawIngredient]:
    source = recipe.get("recipeIngredient") or recipe.get("ingredients") or []
    if isinstance(source, str):
        source = [source]
    if not isinstance(source, list):
        return []

    ingredients: list[RawIngredient] = []
    for entry in source:
        if not isinstance(entry, str):
            continue
        text = entry.strip()
        if text:
            ingredients.append(RawIngredient(raw=text, parsed=None))
    return ingredients


def _step_text(step: Any) -> list[str]:
    if isinstance(step, str):
        return [step.strip()]
    if not isinstance(step, dict):
        return []
    # HowToSection nests its HowToSteps under itemListElement
    nested = step.get("itemListElement")
    if isinstance(nested, list):
        return [text for item in nested for text in _step_text(item)]
    text = step.get("text") or step.get("name") or ""
    return [text.strip()] if isinstance(text, str) else []


def parse_instructions(instructions: Any) -> list[str]:
    if isinstance(instructions, str):
        steps = STEP_SPLIT_PATTERN.split(instructions)
    elif isinstance(instructions, list):
        steps = [text for item in instructions for text in _step_text(item)]
    else:
        return []
    return [step.strip() for step in steps if step and step.strip()]


def parse_servings(recipe_yield: Any) -> int | None:
    """First integer in the yield, or None when the yield carries no number."""
    if isinstance(recipe_yield, bool):
        return None
    if isinstance(recipe_yield, (int, float)):
        if isinstance(recipe_yield, float) and not math.isfinite(recipe_yield):
            return None
        if recipe_yield <= 0:
            return None
        return int(recipe_yield)
    if isinstance(recipe_yield, list) and recipe_yield:
        return parse_servings(recipe_yield[0])
    if isinstance(recipe_yield, str):
        match = FIRST_INTEGER_PATTERN.search(recipe_yield)
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
    return None


def _present(value: Any) -> Confidence:
    return Confidence.HIGH if value else Confidence.LOW


def _build_recipe(recipe: dict[str, Any], title: str) -> ExtractedRecipeData:
    image_url = _extract_image_url(recipe.get("image"))
    ingredients = _extract_ingredients(recipe)
    instructions = parse_instructions(recipe.get("recipeInstructions"))
    servings = parse_servings(recipe.get("recipeYield"))
    prep_time = recipe.get("prepTime")
    cook_time = recipe.get("cookTime")

    confidence = {
        "title": Confidence.HIGH,
        "imageUrl": _present(image_url),
        "ingredients": _present(ingredients),
        "instructions": _present(instructions),
        "servings": Confidence.HIGH if servings is not None else Confidence.MEDIUM,
        "prepTime": _present(prep_time),
        "cookTime": _present(cook_time),
    }

    return ExtractedRecipeData(
        title=title,
        image_url=image_url,
        ingredients=ingredients,
        instructions=instructions,
        servings=servings or DEFAULT_SERVINGS,
        prep_time=duration_to_minutes(prep_time),
        cook_time=duration_to_minutes(cook_time),
        confidence=confidence,
        extraction_method=ExtractionMethod.JSONLD,
    )


def parse_json_ld_recipe(html: str) -> ExtractedRecipeData | None:
    soup = BeautifulSoup(html, "html.parser")
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string or script.get_text()
        try:
            data = json.loads(raw.strip())
        except ValueError:
            logger.debug("Skipping malformed JSON-LD block")
            continue

        for item in _candidate_items(data):
            if not _is_recipe_type(item):
                continue
            name = item.get("name")
            title = name.strip() if isinstance(name, str) else ""
            if not title:
                continue
            return _build_recipe(item, title)

    return None
