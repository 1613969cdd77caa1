from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from recipe_extract.services.coercion import CoercionError, CoercionOutcome, clean_str, clean_text_list
from recipe_extract.services.errors import NetworkTimeoutError, ServiceError
from recipe_extract.services.gemini_client import GeminiClient, load_json_reply, prompt_path
from recipe_extract.services.types import (
    DEFAULT_QUANTITY,
    ExtractionError,
    ExtractionErrorType,
    IngredientCategory,
    ParsedIngredient,
)

logger = logging.getLogger(__name__)

DIET_PROMPT = prompt_path("diet_conversion.txt")
CONVERSION_TEMPERATURE = 0.3
CONVERSION_MAX_TOKENS = 4096
CONVERSION_FAILED_MESSAGE = "Failed to convert recipe. Please try again."

# Leading quantity and common unit, e.g. "2 cups " or "1.5 tbsp "
QUANTITY_PREFIX_PATTERN = re.compile(
    r"^\d+(?:\.\d+)?\s*(?:(?:cups?|tbsp|tsp|oz|lb|g|kg|ml|l)\b)?\.?\s*", re.IGNORECASE
)
DIET_SPECIFIC_TAGS = ("contains-meat", "contains-dairy", "contains-gluten")


class DietType(str, Enum):
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    GLUTEN_FREE = "gluten-free"


DIET_DESCRIPTIONS = {
    DietType.VEGAN: (
        "VEGAN (no animal products at all - no meat, fish, dairy, eggs, honey, "
        "or any animal-derived ingredients)"
    ),
    DietType.VEGETARIAN: "VEGETARIAN (no meat or fish, but dairy and eggs are allowed)",
    DietType.GLUTEN_FREE: "GLUTEN-FREE (no wheat, barley, rye, or any gluten-containing ingredients)",
}

DIET_GUIDELINES = {
    DietType.VEGAN: (
        "Replace meat/fish with appropriate plant proteins (tofu, tempeh, seitan, legumes, mushrooms)",
        "Replace dairy with plant-based alternatives (oat milk, coconut cream, nutritional yeast, cashew cream)",
        "Replace eggs with flax eggs, chia eggs, or commercial egg replacers depending on the use",
        "Replace honey with maple syrup or agave",
    ),
    DietType.VEGETARIAN: (
        "Replace meat/fish with appropriate vegetarian proteins (tofu, tempeh, legumes, mushrooms, cheese, eggs)",
        "Dairy and eggs can remain",
        "Keep similar texture and protein content",
    ),
    DietType.GLUTEN_FREE: (
        "Replace wheat flour with gluten-free alternatives (almond flour, rice flour, oat flour marked GF, coconut flour)",
        "Replace regular pasta with gluten-free pasta (rice, corn, or legume-based)",
        "Replace soy sauce with tamari or coconut aminos",
        "Replace breadcrumbs with gluten-free breadcrumbs or crushed gluten-free crackers",
        "Check that all processed ingredients are certified gluten-free",
        "Replace regular oats with certified gluten-free oats",
        "Replace beer with gluten-free beer or broth in cooking",
    ),
}

DIET_LABELS = {
    DietType.VEGAN: "Vegan",
    DietType.VEGETARIAN: "Vegetarian",
    DietType.GLUTEN_FREE: "Gluten-Free",
}


@dataclass(frozen=True)
class DietRecipe:
    """An already-structured recipe handed to the converter."""
    title: str
    ingredients: list[ParsedIngredient]
    instructions: list[str]
    dietary_tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConvertedIngredient:
    original: str
    converted: str
    changed: bool
    reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "converted": self.converted,
            "changed": self.changed,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DietConversion:
    ingredients: list[ConvertedIngredient]
    instructions: list[str]
    instruction_changes: list[str]
    tips: list[str]


@dataclass(frozen=True)
class DietConversionResult:
    success: bool
    diet_type: DietType
    ingredients: list[ConvertedIngredient] = field(default_factory=list)
    instructions: list[str] = field(default_factory=list)
    instruction_changes: list[str] = field(default_factory=list)
    tips: list[str] = field(default_factory=list)
    error: Optional[ExtractionError] = None

    @classmethod
    def failed(cls, diet: DietType, error_type: ExtractionErrorType, message: str) -> "DietConversionResult":
        return cls(success=False, diet_type=diet, error=ExtractionError(type=error_type, message=message))

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "dietType": self.diet_type.value,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "instructionChanges": list(self.instruction_changes),
            "tips": list(self.tips),
            "error": self.error.to_dict() if self.error else None,
        }


def _format_quantity(quantity: float) -> str:
    return str(int(quantity)) if float(quantity).is_integer() else str(quantity)


def ingredient_line(ingredient: ParsedIngredient) -> str:
    return " ".join(
        part for part in (_format_quantity(ingredient.quantity), ingredient.unit, ingredient.name) if part
    )


def build_conversion_prompt(diet: DietType, recipe: DietRecipe) -> str:
    ingredients = "\n".join(
        f"{index}. {ingredient_line(ingredient)}" for index, ingredient in enumerate(recipe.ingredients, 1)
    )
    instructions = "\n".join(f"{index}. {step}" for index, step in enumerate(recipe.instructions, 1))
    guidelines = "\n".join(f"- {line}" for line in DIET_GUIDELINES[diet])

    return (
        f"Convert the following recipe to be {DIET_DESCRIPTIONS[diet]}.\n\n"
        f'RECIPE: "{recipe.title}"\n\n'
        f"CURRENT INGREDIENTS:\n{ingredients}\n\n"
        f"CURRENT INSTRUCTIONS:\n{instructions}\n\n"
        f"CONVERSION GUIDELINES:\n{guidelines}\n"
        "- Keep the recipe delicious and satisfying\n\n"
        f"Tips should help make this {diet.value} version delicious."
    )


def _coerce_converted_ingredient(entry: object, original: str) -> ConvertedIngredient:
    if not isinstance(entry, dict):
        return ConvertedIngredient(original=original, converted=original, changed=False)
    converted = clean_str(entry.get("converted")) or original
    changed = entry.get("changed") is True and converted != original
    return ConvertedIngredient(
        original=clean_str(entry.get("original")) or original,
        converted=converted,
        changed=changed,
        reason=clean_str(entry.get("reason")) if changed else None,
    )


def coerce_diet_response(payload: object, original: DietRecipe) -> CoercionOutcome[DietConversion]:
    """Validate a conversion reply against the recipe it was built from.

    One entry per original ingredient, by position. Missing or malformed
    entries count as unchanged; a reply without instructions keeps the
    original steps.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("ingredients"), list):
        return CoercionOutcome(value=None, error=_conversion_error())

    entries = payload["ingredients"]
    ingredients = [
        _coerce_converted_ingredient(
            entries[index] if index < len(entries) else None, ingredient_line(ingredient)
        )
        for index, ingredient in enumerate(original.ingredients)
    ]
    instructions = clean_text_list(payload.get("instructions")) or list(original.instructions)

    return CoercionOutcome(
        value=DietConversion(
            ingredients=ingredients,
            instructions=instructions,
            instruction_changes=clean_text_list(payload.get("instructionChanges")),
            tips=clean_text_list(payload.get("tips")),
        )
    )


def _conversion_error() -> CoercionError:
    return CoercionError(type=ExtractionErrorType.EXTRACTION_FAILED, message=CONVERSION_FAILED_MESSAGE)


def convert_recipe_diet(
    recipe: DietRecipe,
    diet: DietType,
    client: GeminiClient | None,
) -> DietConversionResult:
    if client is None:
        logger.warning("GEMINI_API_KEY not configured")
        return DietConversionResult.failed(
            diet, ExtractionErrorType.CONFIGURATION_ERROR, "AI extraction is not configured"
        )

    try:
        text = client.generate_json(
            build_conversion_prompt(diet, recipe),
            system_prompt_path=DIET_PROMPT,
            temperature=CONVERSION_TEMPERATURE,
            max_output_tokens=CONVERSION_MAX_TOKENS,
        )
        payload = load_json_reply(text)
    except NetworkTimeoutError:
        return DietConversionResult.failed(
            diet, ExtractionErrorType.TIMEOUT, "Diet conversion timed out. Please try again."
        )
    except ServiceError as error:
        logger.error("Diet conversion to %s failed: %s", diet.value, error)
        return DietConversionResult(success=False, diet_type=diet, error=error.to_error())

    outcome = coerce_diet_response(payload, recipe)
    if outcome.value is None:
        return DietConversionResult(
            success=False,
            diet_type=diet,
            error=outcome.error.to_error() if outcome.error else None,
        )

    conversion = outcome.value
    return DietConversionResult(
        success=True,
        diet_type=diet,
        ingredients=conversion.ingredients,
        instructions=conversion.instructions,
        instruction_changes=conversion.instruction_changes,
        tips=conversion.tips,
    )


def strip_quantity_prefix(text: str) -> str:
    return QUANTITY_PREFIX_PATTERN.sub("", text.strip(), count=1).strip()


def apply_conversion(
    recipe: DietRecipe,
    converted: Sequence[ConvertedIngredient],
) -> list[ParsedIngredient]:
    """Converted names with the original quantity, unit and category by position."""
    ingredients: list[ParsedIngredient] = []
    for index, entry in enumerate(converted):
        original = recipe.ingredients[index] if index < len(recipe.ingredients) else None
        if original is not None and not entry.changed:
            ingredients.append(original)
            continue
        name = strip_quantity_prefix(entry.converted) or (original.name if original else "")
        ingredients.append(
            ParsedIngredient(
                name=name or entry.converted,
                quantity=original.quantity if original else DEFAULT_QUANTITY,
                unit=original.unit if original else "",
                category=original.category if original else IngredientCategory.OTHER,
            )
        )
    return ingredients


def diet_label(diet: DietType) -> str:
    return DIET_LABELS[diet]


def updated_dietary_tags(tags: Sequence[str], diet: DietType) -> list[str]:
    kept = [tag for tag in tags if tag not in DIET_SPECIFIC_TAGS and tag != diet.value]
    return kept + [diet.value]
