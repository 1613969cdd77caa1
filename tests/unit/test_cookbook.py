from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest
from google.genai.errors import UnknownApiResponseError

from recipe_extract.services.cookbook import (
    format_page_range,
    is_recipe_incomplete,
    merge_pages,
    scan_cookbook_page,
)
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.types import CookbookPageRecipe, ExtractionErrorType, ParsedIngredient


class GeminiClientStub:
    def __init__(self, reply: Any) -> None:
        self.reply = reply
        self.calls = 0

    def generate_json(self, user_prompt: str, **kwargs: Any) -> str:
        self.calls += 1
        return json.dumps(self.reply)


def _page(
    title: str = "",
    ingredients: tuple[str, ...] = (),
    instructions: tuple[str, ...] = (),
    servings: int = 4,
    prep_time: int = 0,
    cook_time: int = 0,
    page_number: str | None = None,
) -> CookbookPageRecipe:
    return CookbookPageRecipe(
        title=title,
        ingredients=[ParsedIngredient(name=name) for name in ingredients],
        instructions=list(instructions),
        servings=servings,
        prep_time=prep_time,
        cook_time=cook_time,
        page_number=page_number,
    )


class TestScanCookbookPage:
    def test_success(self) -> None:
        client = GeminiClientStub(
            {
                "success": True,
                "title": "Soda Bread",
                "ingredients": [{"name": "flour", "quantity": 4, "unit": "cup", "category": "pantry"}],
                "instructions": ["Mix", "Bake"],
                "pageNumber": "112",
            }
        )

        result = scan_cookbook_page(b"jpeg", "image/jpeg", client)

        assert result.success is True
        assert result.data.title == "Soda Bread"
        assert result.data.page_number == "112"

    def test_empty_image(self) -> None:
        client = GeminiClientStub({})

        result = scan_cookbook_page(b"", "image/jpeg", client)

        assert result.error.message == "No image data received"
        assert client.calls == 0

    def test_unsupported_type(self) -> None:
        result = scan_cookbook_page(b"gif", "image/gif", GeminiClientStub({}))
        assert result.error.type is ExtractionErrorType.EXTRACTION_FAILED

    def test_poor_quality(self) -> None:
        client = GeminiClientStub({"success": False, "error": "POOR_QUALITY", "message": "Too blurry"})

        result = scan_cookbook_page(b"jpeg", "image/png", client)

        assert result.error.type is ExtractionErrorType.POOR_QUALITY

    def test_unreadable_model_response_is_typed(self) -> None:
        gemini = GeminiClient("test-key")
        gemini._client = MagicMock()
        gemini._client.models.generate_content.side_effect = UnknownApiResponseError("Unknown API response")

        result = scan_cookbook_page(b"jpeg", "image/jpeg", gemini)

        assert result.success is False
        assert result.error.type is ExtractionErrorType.EXTRACTION_FAILED


class TestFormatPageRange:
    @pytest.mark.parametrize(
        ("pages", "expected"),
        [
            (["42"], "42"),
            (["42", "43", "44"], "pp. 42-44"),
            (["44", "42", "43"], "pp. 42-44"),
            (["42", "45"], "pp. 42, 45"),
            (["iv", "v"], "pp. iv, v"),
            ([None, " "], ""),
            ([], ""),
        ],
    )
    def test_formats(self, pages: list, expected: str) -> None:
        assert format_page_range(pages) == expected


class TestMergePages:
    def test_concatenates_in_scan_order(self) -> None:
        first = _page("Lasagna", ("pasta", "ricotta"), ("Boil pasta",), prep_time=20, page_number="88")
        second = _page("", ("mozzarella",), ("Layer", "Bake"), servings=8, cook_time=45, page_number="89")

        merged = merge_pages([first, second])

        assert merged.title == "Lasagna"
        assert [ingredient.name for ingredient in merged.ingredients] == ["pasta", "ricotta", "mozzarella"]
        assert merged.instructions == ["Boil pasta", "Layer", "Bake"]
        assert merged.servings == 8
        assert merged.prep_time == 20
        assert merged.cook_time == 45
        assert merged.page_number == "pp. 88-89"

    def test_defaults(self) -> None:
        merged = merge_pages([_page(), _page()])

        assert merged.title == "Untitled Recipe"
        assert merged.servings == 4
        assert merged.prep_time == 0

    def test_empty_list(self) -> None:
        with pytest.raises(ValueError):
            merge_pages([])


class TestIsRecipeIncomplete:
    def test_ingredients_without_steps(self) -> None:
        assert is_recipe_incomplete(_page("x", ("a", "b", "c"))) is True

    def test_too_few_ingredients(self) -> None:
        assert is_recipe_incomplete(_page("x", ("a",), ("one", "two"))) is True

    def test_single_step(self) -> None:
        assert is_recipe_incomplete(_page("x", ("a", "b", "c"), ("Bake",))) is True

    def test_complete(self) -> None:
        assert is_recipe_incomplete(_page("x", ("a", "b", "c"), ("Mix", "Bake"))) is False
