from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
from google.genai.errors import UnknownApiResponseError

from recipe_extract.services.diet import (
    DIET_PROMPT,
    ConvertedIngredient,
    DietRecipe,
    DietType,
    apply_conversion,
    build_conversion_prompt,
    coerce_diet_response,
    convert_recipe_diet,
    diet_label,
    ingredient_line,
    strip_quantity_prefix,
    updated_dietary_tags,
)
from recipe_extract.services.errors import NetworkTimeoutError
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.types import ExtractionErrorType, IngredientCategory, ParsedIngredient

RECIPE = DietRecipe(
    title="Beef Tacos",
    ingredients=[
        ParsedIngredient(name="ground beef", quantity=1, unit="lb", category=IngredientCategory.MEAT),
        ParsedIngredient(name="tortillas", quantity=8, unit="item", category=IngredientCategory.BREAD),
        ParsedIngredient(name="lime juice", quantity=1.5, unit="tbsp", category=IngredientCategory.PRODUCE),
    ],
    instructions=["Brown the beef", "Warm the tortillas"],
    dietary_tags=["contains-meat", "quick"],
)

VEGAN_REPLY = {
    "ingredients": [
        {"original": "1 lb ground beef", "converted": "1 lb crumbled tempeh", "changed": True, "reason": "Plant protein"},
        {"original": "8 item tortillas", "converted": "8 item tortillas", "changed": False},
        {"original": "1.5 tbsp lime juice", "converted": "1.5 tbsp lime juice", "changed": False},
    ],
    "instructions": ["Brown the tempeh", "Warm the tortillas"],
    "instructionChanges": ["Tempeh browns faster than beef"],
    "tips": ["Add smoked paprika"],
}


class GeminiClientStub:
    def __init__(self, reply: Any = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_json(
        self,
        user_prompt: str,
        *,
        system_prompt_path: Path | None = None,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
        **kwargs: Any,
    ) -> str:
        self.calls.append(
            {
                "prompt": user_prompt,
                "system_prompt_path": system_prompt_path,
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            }
        )
        if self.error is not None:
            raise self.error
        return json.dumps(self.reply)


class TestBuildConversionPrompt:
    def test_lists_numbered_ingredients_and_guidelines(self) -> None:
        prompt = build_conversion_prompt(DietType.VEGAN, RECIPE)

        assert prompt.startswith("Convert the following recipe to be VEGAN")
        assert '"Beef Tacos"' in prompt
        assert "1. 1 lb ground beef" in prompt
        assert "3. 1.5 tbsp lime juice" in prompt
        assert "2. Warm the tortillas" in prompt
        assert "- Replace honey with maple syrup or agave" in prompt
        assert prompt.endswith("Tips should help make this vegan version delicious.")

    def test_ingredient_line_drops_trailing_zero(self) -> None:
        assert ingredient_line(ParsedIngredient(name="eggs", quantity=2.0, unit="item")) == "2 item eggs"


class TestConvertRecipeDiet:
    def test_success(self) -> None:
        client = GeminiClientStub(VEGAN_REPLY)

        result = convert_recipe_diet(RECIPE, DietType.VEGAN, client)

        assert result.success is True
        assert result.diet_type is DietType.VEGAN
        assert [entry.changed for entry in result.ingredients] == [True, False, False]
        assert result.ingredients[0].reason == "Plant protein"
        assert result.instructions == ["Brown the tempeh", "Warm the tortillas"]
        assert result.tips == ["Add smoked paprika"]
        assert client.calls[0]["system_prompt_path"] == DIET_PROMPT
        assert client.calls[0]["temperature"] == 0.3
        assert client.calls[0]["max_output_tokens"] == 4096

    def test_missing_client(self) -> None:
        result = convert_recipe_diet(RECIPE, DietType.VEGAN, None)

        assert result.success is False
        assert result.error.type is ExtractionErrorType.CONFIGURATION_ERROR

    def test_timeout(self) -> None:
        result = convert_recipe_diet(RECIPE, DietType.VEGAN, GeminiClientStub(error=NetworkTimeoutError("gemini", 60)))

        assert result.error.type is ExtractionErrorType.TIMEOUT
        assert result.error.message == "Diet conversion timed out. Please try again."

    def test_malformed_reply(self) -> None:
        result = convert_recipe_diet(RECIPE, DietType.VEGAN, GeminiClientStub({"tips": []}))

        assert result.success is False
        assert result.error.message == "Failed to convert recipe. Please try again."

    def test_unreadable_model_response_is_typed(self) -> None:
        gemini = GeminiClient("test-key")
        gemini._client = MagicMock()
        gemini._client.models.generate_content.side_effect = UnknownApiResponseError("Unknown API response")

        result = convert_recipe_diet(RECIPE, DietType.VEGAN, gemini)

        assert result.success is False
        assert result.error.type is ExtractionErrorType.EXTRACTION_FAILED
        assert result.error.message == "AI returned an unreadable response"

    def test_to_dict(self) -> None:
        payload = convert_recipe_diet(RECIPE, DietType.GLUTEN_FREE, GeminiClientStub(VEGAN_REPLY)).to_dict()

        assert payload["dietType"] == "gluten-free"
        assert payload["instructionChanges"] == ["Tempeh browns faster than beef"]
        assert payload["error"] is None


class TestCoerceDietResponse:
    def test_short_reply_is_padded_with_unchanged_entries(self) -> None:
        outcome = coerce_diet_response({"ingredients": [VEGAN_REPLY["ingredients"][0]]}, RECIPE)

        ingredients = outcome.value.ingredients
        assert len(ingredients) == 3
        assert ingredients[2].changed is False
        assert ingredients[2].converted == "1.5 tbsp lime juice"
        assert outcome.value.instructions == RECIPE.instructions

    def test_changed_flag_requires_different_text(self) -> None:
        reply = {"ingredients": [{"converted": "1 lb ground beef", "changed": True}]}

        outcome = coerce_diet_response(reply, RECIPE)

        assert outcome.value.ingredients[0].changed is False
        assert outcome.value.ingredients[0].reason is None


class TestStripQuantityPrefix:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2 cups oat milk", "oat milk"),
            ("1.5 tbsp tamari", "tamari"),
            ("200g firm tofu", "firm tofu"),
            ("1 lemon", "lemon"),
            ("3 large eggs", "large eggs"),
            ("1 l vegetable stock", "vegetable stock"),
            ("nutritional yeast", "nutritional yeast"),
        ],
    )
    def test_strips_leading_amount(self, text: str, expected: str) -> None:
        assert strip_quantity_prefix(text) == expected


class TestApplyConversion:
    def test_keeps_original_quantity_and_unit(self) -> None:
        converted = [
            ConvertedIngredient(original="1 lb ground beef", converted="1 lb crumbled tempeh", changed=True),
            ConvertedIngredient(original="8 item tortillas", converted="8 item tortillas", changed=False),
        ]

        ingredients = apply_conversion(RECIPE, converted)

        assert ingredients[0] == ParsedIngredient(
            name="crumbled tempeh", quantity=1, unit="lb", category=IngredientCategory.MEAT
        )
        assert ingredients[1] is RECIPE.ingredients[1]


class TestDietTags:
    def test_replaces_conflicting_tags(self) -> None:
        assert updated_dietary_tags(["contains-meat", "quick", "vegan"], DietType.VEGAN) == ["quick", "vegan"]

    def test_label(self) -> None:
        assert diet_label(DietType.GLUTEN_FREE) == "Gluten-Free"
