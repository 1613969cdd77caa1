from __future__ import annotations

import re

from recipe_extract.services.ids import duration_to_minutes
from recipe_extract.services.jsonld import parse_servings
from recipe_extract.services.types import (
    DEFAULT_SERVINGS,
    Confidence,
    ExtractedRecipeData,
    ExtractionMethod,
    RawIngredient,
)

RECIPE_ITEMTYPES = (
    'itemtype="http://schema.org/Recipe"',
    "itemtype='http://schema.org/Recipe'",
    'itemtype="https://schema.org/Recipe"',
    "itemtype='https://schema.org/Recipe'",
)
RECIPE_PROP_MARKERS = ('itemprop="recipeIngredient"', 'itemprop="recipeInstructions"')

IMG_SRC_AFTER_PATTERN = re.compile(
    r"<img[^>]*itemprop=[\"']image[\"'][^>]*src=[\"']([^\"']+)[\"']", re.IGNORECASE
)
IMG_SRC_BEFORE_PATTERN = re.compile(
    r"<img[^>]*src=[\"']([^\"']+)[\"'][^>]*itemprop=[\"']image[\"']", re.IGNORECASE
)
INGREDIENT_ELEMENT_PATTERN = re.compile(
    r"<([^>]*itemprop=[\"'](?:recipeIngredient|ingredients)[\"'][^>]*)>([^<]*)", re.IGNORECASE
)
CONTENT_ATTR_PATTERN = re.compile(r"\bcontent=[\"']([^\"']+)[\"']", re.IGNORECASE)
INSTRUCTION_BLOCK_PATTERN = re.compile(
    r"<[^>]*itemprop=[\"'](?:recipeInstructions|instructions)[\"'][^>]*>([\s\S]*?)</[^>]+>",
    re.IGNORECASE,
)
HOW_TO_STEP_PATTERN = re.compile(r"<[^>]*itemprop=[\"'](?:step|text)[\"'][^>]*>([^<]*)<", re.IGNORECASE)
TAG_PATTERN = re.compile(r"<[^>]+>")
NUMBERED_STEP_SPLIT_PATTERN = re.compile(r"(?:^|(?<=\s))\d+\.\s*|\n\n+")


def _has_recipe_markup(html: str) -> bool:
    return any(marker in html for marker in RECIPE_ITEMTYPES) or any(
        marker in html for marker in RECIPE_PROP_MARKERS
    )


def extract_item_prop(html: str, prop_name: str) -> str | None:
    """Value of the first ``itemprop=prop_name``: a content attribute on either side, else inline text."""
    name = re.escape(prop_name)
    patterns = (
        rf"itemprop=[\"']{name}[\"'][^>]*content=[\"']([^\"']+)[\"']",
        rf"content=[\"']([^\"']+)[\"'][^>]*itemprop=[\"']{name}[\"']",
        rf"<[^>]*itemprop=[\"']{name}[\"'][^>]*>([^<]+)<",
    )
    for pattern in patterns:
        match = re.search(pattern, html, re.IGNORECASE)
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def _extract_image(html: str) -> str | None:
    for pattern in (IMG_SRC_AFTER_PATTERN, IMG_SRC_BEFORE_PATTERN):
        match = pattern.search(html)
        if match:
            return match.group(1)
    return extract_item_prop(html, "image")


def _extract_ingredients(html: str) -> list[str]:
    ingredients: list[str] = []
    for match in INGREDIENT_ELEMENT_PATTERN.finditer(html):
        # one value per element, content= before inline text
        content = CONTENT_ATTR_PATTERN.search(match.group(1))
        text = (content.group(1) if content else match.group(2)).strip()
        if text:
            ingredients.append(text)
    return ingredients


def _extract_instructions(html: str) -> list[str]:
    instructions: list[str] = []
    for match in INSTRUCTION_BLOCK_PATTERN.finditer(html):
        text = TAG_PATTERN.sub(" ", match.group(1)).strip()
        steps = NUMBERED_STEP_SPLIT_PATTERN.split(text)
        instructions.extend(step.strip() for step in steps if step and step.strip())

    # HowToStep markup
    for match in HOW_TO_STEP_PATTERN.finditer(html):
        text = match.group(1).strip()
        if text and text not in instructions:
            instructions.append(text)
    return instructions


def _found(value: object) -> Confidence:
    return Confidence.MEDIUM if value else Confidence.LOW


def parse_microdata_recipe(html: str) -> ExtractedRecipeData | None:
    if not _has_recipe_markup(html):
        return None

    title = extract_item_prop(html, "name")
    if not title:
        return None

    image_url = _extract_image(html)
    ingredients = _extract_ingredients(html)
    instructions = _extract_instructions(html)
    prep_time = extract_item_prop(html, "prepTime")
    cook_time = extract_item_prop(html, "cookTime")
    recipe_yield = extract_item_prop(html, "recipeYield")

    return ExtractedRecipeData(
        title=title,
        image_url=image_url,
        ingredients=[RawIngredient(raw=text, parsed=None) for text in ingredients],
        instructions=instructions,
        servings=parse_servings(recipe_yield) or DEFAULT_SERVINGS,
        prep_time=duration_to_minutes(prep_time),
        cook_time=duration_to_minutes(cook_time),
        confidence={
            "title": Confidence.HIGH,
            "imageUrl": _found(image_url),
            "ingredients": _found(ingredients),
            "instructions": _found(instructions),
            "servings": _found(recipe_yield),
            "prepTime": _found(prep_time),
            "cookTime": _found(cook_time),
        },
        extraction_method=ExtractionMethod.MICRODATA,
    )
