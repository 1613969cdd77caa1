from __future__ import annotations

import json

from recipe_extract.services.jsonld import parse_instructions, parse_json_ld_recipe, parse_servings
from recipe_extract.services.types import Confidence, ExtractionMethod


def _page(*blocks: object) -> str:
    scripts = "".join(
        f'<script type="application/ld+json">{block if isinstance(block, str) else json.dumps(block)}</script>'
        for block in blocks
    )
    return f"<html><head>{scripts}</head><body><h1>Recipe</h1></body></html>"


RECIPE = {
    "@context": "https://schema.org",
    "@type": "Recipe",
    "name": "  Weeknight Chili ",
    "image": [{"@type": "ImageObject", "url": "https://example.com/chili.jpg"}],
    "recipeIngredient": ["1 lb ground beef", "  ", "2 cans beans"],
    "recipeInstructions": [
        {"@type": "HowToStep", "text": "Brown the beef."},
        {"@type": "HowToStep", "text": "Add beans and simmer."},
    ],
    "recipeYield": "6 servings",
    "prepTime": "PT15M",
    "cookTime": "PT1H",
}


class TestParseJsonLdRecipe:
    def test_extracts_full_recipe(self) -> None:
        recipe = parse_json_ld_recipe(_page(RECIPE))

        assert recipe is not None
        assert recipe.title == "Weeknight Chili"
        assert recipe.image_url == "https://example.com/chili.jpg"
        assert [item.raw for item in recipe.ingredients] == ["1 lb ground beef", "2 cans beans"]
        assert all(item.parsed is None for item in recipe.ingredients)
        assert recipe.instructions == ["Brown the beef.", "Add beans and simmer."]
        assert recipe.servings == 6
        assert recipe.prep_time == 15
        assert recipe.cook_time == 60
        assert recipe.extraction_method is ExtractionMethod.JSONLD
        assert recipe.confidence["title"] is Confidence.HIGH
        assert recipe.confidence["servings"] is Confidence.HIGH

    def test_finds_recipe_inside_graph(self) -> None:
        graph = {"@context": "https://schema.org", "@graph": [{"@type": "WebPage", "name": "Home"}, RECIPE]}

        recipe = parse_json_ld_recipe(_page(graph))

        assert recipe is not None
        assert recipe.title == "Weeknight Chili"

    def test_accepts_type_list(self) -> None:
        recipe = parse_json_ld_recipe(_page({**RECIPE, "@type": ["Recipe", "NewsArticle"]}))
        assert recipe is not None

    def test_skips_malformed_block(self) -> None:
        recipe = parse_json_ld_recipe(_page("{not json", RECIPE))
        assert recipe is not None
        assert recipe.title == "Weeknight Chili"

    def test_requires_a_name(self) -> None:
        assert parse_json_ld_recipe(_page({**RECIPE, "name": "   "})) is None

    def test_ignores_non_recipe_types(self) -> None:
        assert parse_json_ld_recipe(_page({"@type": "Article", "name": "News"})) is None

    def test_unquoted_type_attribute(self) -> None:
        html = f"<html><head><script type=application/ld+json>{json.dumps(RECIPE)}</script></head></html>"

        recipe = parse_json_ld_recipe(html)

        assert recipe is not None
        assert recipe.title == "Weeknight Chili"

    def test_quoted_angle_bracket_in_other_attribute(self) -> None:
        html = f"<script data-x='a>b' type=\"application/ld+json\">{json.dumps(RECIPE)}</script>"

        recipe = parse_json_ld_recipe(html)

        assert recipe is not None
        assert recipe.servings == 6

    def test_infinite_yield_uses_default_servings(self) -> None:
        block = json.dumps({"@type": "Recipe", "name": "Toast"})[:-1] + ', "recipeYield": 1e999}'

        recipe = parse_json_ld_recipe(_page(block))

        assert recipe is not None
        assert recipe.servings == 4

    def test_no_structured_data(self) -> None:
        assert parse_json_ld_recipe("<html><body>Just text</body></html>") is None

    def test_missing_fields_fall_back_to_defaults(self) -> None:
        recipe = parse_json_ld_recipe(_page({"@type": "Recipe", "name": "Toast"}))

        assert recipe is not None
        assert recipe.image_url is None
        assert recipe.ingredients == []
        assert recipe.servings == 4
        assert recipe.prep_time == 0
        assert recipe.confidence["servings"] is Confidence.MEDIUM
        assert recipe.confidence["imageUrl"] is Confidence.LOW
        assert recipe.confidence["ingredients"] is Confidence.LOW


class TestParseInstructions:
    def test_numbered_string(self) -> None:
        assert parse_instructions("1. Mix flour. 2. Bake it.") == ["Mix flour.", "Bake it."]

    def test_newline_separated_string(self) -> None:
        assert parse_instructions("Mix\n\nBake\n") == ["Mix", "Bake"]

    def test_how_to_sections(self) -> None:
        instructions = [
            {
                "@type": "HowToSection",
                "name": "Dough",
                "itemListElement": [
                    {"@type": "HowToStep", "text": "Knead."},
                    {"@type": "HowToStep", "text": "Rest."},
                ],
            },
            "Bake.",
        ]
        assert parse_instructions(instructions) == ["Knead.", "Rest.", "Bake."]

    def test_unexpected_shape(self) -> None:
        assert parse_instructions(42) == []


class TestParseServings:
    def test_variants(self) -> None:
        assert parse_servings("Makes 12 cookies") == 12
        assert parse_servings(["8", "8 slices"]) == 8
        assert parse_servings(3) == 3
        assert parse_servings("a crowd") is None
        assert parse_servings(None) is None
        assert parse_servings(True) is None
        assert parse_servings(float("inf")) is None
        assert parse_servings(float("nan")) is None
