from __future__ import annotations

import json
from typing import Any, Optional

from recipe_extract.services.errors import (
    FetchFailedError,
    NetworkTimeoutError,
    PaywallDetectedError,
)
from recipe_extract.services.extractor import DEFAULT_ATTEMPTS, Attempt, extract_recipe_from_url
from recipe_extract.services.types import (
    Confidence,
    ExtractedRecipeData,
    ExtractionErrorType,
    ExtractionMethod,
    RawIngredient,
)

URL = "https://example.com/recipes/chili"

JSON_LD_PAGE = (
    '<script type="application/ld+json">'
    '{"@type": "Recipe", "name": "Chili", "recipeIngredient": ["1 lb beef"], "recipeInstructions": "Cook."}'
    "</script>"
)


def _recipe(method: ExtractionMethod, title: str = "Chili") -> ExtractedRecipeData:
    return ExtractedRecipeData(
        title=title,
        image_url=None,
        ingredients=[RawIngredient(raw="1 lb beef")],
        instructions=["Cook."],
        servings=4,
        prep_time=0,
        cook_time=0,
        confidence={"title": Confidence.HIGH},
        extraction_method=method,
    )


class FetchStub:
    def __init__(self, html: str = "<html></html>", error: Exception | None = None) -> None:
        self.html = html
        self.error = error
        self.calls: list[str] = []

    def __call__(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


class AttemptStub:
    def __init__(self, result: Optional[ExtractedRecipeData] = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls = 0

    def __call__(self, html: str) -> Optional[ExtractedRecipeData]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class GeminiClientStub:
    def __init__(self, reply: Any = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls = 0

    def generate_json(self, user_prompt: str, **kwargs: Any) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return json.dumps(self.reply)


AI_REPLY = {"title": "AI Chili", "ingredients": ["1 lb beef"], "instructions": ["Cook."]}


class TestStructuredDataFirst:
    def test_json_ld_short_circuits_everything_after_it(self) -> None:
        microdata = AttemptStub(_recipe(ExtractionMethod.MICRODATA))
        client = GeminiClientStub(AI_REPLY)
        attempts = (DEFAULT_ATTEMPTS[0], Attempt("microdata", microdata))

        result = extract_recipe_from_url(URL, fetch=FetchStub(JSON_LD_PAGE), client=client, attempts=attempts)

        assert result.success is True
        assert result.data.extraction_method is ExtractionMethod.JSONLD
        assert result.source_url == URL
        assert microdata.calls == 0
        assert client.calls == 0

    def test_falls_through_to_microdata(self) -> None:
        jsonld = AttemptStub(None)
        microdata = AttemptStub(_recipe(ExtractionMethod.MICRODATA))
        client = GeminiClientStub(AI_REPLY)

        result = extract_recipe_from_url(
            URL,
            fetch=FetchStub(),
            client=client,
            attempts=(Attempt("jsonld", jsonld), Attempt("microdata", microdata)),
        )

        assert result.data.extraction_method is ExtractionMethod.MICRODATA
        assert jsonld.calls == 1
        assert client.calls == 0

    def test_parser_exception_is_treated_as_no_result(self) -> None:
        jsonld = AttemptStub(error=ValueError("bad markup"))
        microdata = AttemptStub(_recipe(ExtractionMethod.MICRODATA))

        result = extract_recipe_from_url(
            URL,
            fetch=FetchStub(),
            attempts=(Attempt("jsonld", jsonld), Attempt("microdata", microdata)),
        )

        assert result.success is True
        assert result.data.extraction_method is ExtractionMethod.MICRODATA


class TestGenerativeFallback:
    def test_ai_result_is_final(self) -> None:
        client = GeminiClientStub(AI_REPLY)

        result = extract_recipe_from_url(
            URL, fetch=FetchStub(), client=client, attempts=(Attempt("jsonld", AttemptStub(None)),)
        )

        assert result.success is True
        assert result.data.title == "AI Chili"
        assert result.data.extraction_method is ExtractionMethod.AI
        assert result.source_url == URL
        assert client.calls == 1

    def test_ai_no_recipe(self) -> None:
        result = extract_recipe_from_url(
            URL,
            fetch=FetchStub(),
            client=GeminiClientStub({"error": "NO_RECIPE_FOUND"}),
            attempts=(),
        )

        assert result.success is False
        assert result.error.type is ExtractionErrorType.NO_RECIPE_FOUND
        assert result.source_url == URL

    def test_missing_credential(self) -> None:
        result = extract_recipe_from_url(URL, fetch=FetchStub(), client=None, attempts=())

        assert result.error.type is ExtractionErrorType.CONFIGURATION_ERROR

    def test_unexpected_ai_exception(self) -> None:
        result = extract_recipe_from_url(
            URL, fetch=FetchStub(), client=GeminiClientStub(error=RuntimeError("boom")), attempts=()
        )

        assert result.error.type is ExtractionErrorType.EXTRACTION_FAILED
        assert result.error.message == "AI extraction error: boom"


class TestFetchFailures:
    def test_invalid_url_never_fetches(self) -> None:
        fetch = FetchStub()

        result = extract_recipe_from_url("not a url", fetch=fetch)

        assert result.error.type is ExtractionErrorType.INVALID_URL
        assert fetch.calls == []

    def test_timeout(self) -> None:
        attempt = AttemptStub(None)

        result = extract_recipe_from_url(
            URL,
            fetch=FetchStub(error=NetworkTimeoutError(URL, 30)),
            attempts=(Attempt("jsonld", attempt),),
        )

        assert result.error.type is ExtractionErrorType.TIMEOUT
        assert "took too long" in result.error.message
        assert attempt.calls == 0

    def test_paywall(self) -> None:
        result = extract_recipe_from_url(URL, fetch=FetchStub(error=PaywallDetectedError("paywall")))
        assert result.error.type is ExtractionErrorType.PAYWALL_DETECTED

    def test_http_failure(self) -> None:
        result = extract_recipe_from_url(URL, fetch=FetchStub(error=FetchFailedError("HTTP 500")))

        assert result.error.type is ExtractionErrorType.FETCH_FAILED
        assert result.error.message == "HTTP 500"

    def test_empty_body(self) -> None:
        result = extract_recipe_from_url(URL, fetch=FetchStub(html=""))
        assert result.error.type is ExtractionErrorType.FETCH_FAILED


SIMPLE_SALAD_PAGE = """
<html><body>
<div itemscope itemtype="https://schema.org/Recipe">
  <h1 itemprop="name">Simple Salad</h1>
  <span itemprop="recipeIngredient">1 head lettuce</span>
  <span itemprop="recipeIngredient">1 cucumber</span>
  <span itemprop="recipeIngredient">2 tbsp olive oil</span>
  <div itemprop="recipeInstructions">Chop everything and toss with oil.</div>
</div>
</body></html>
"""


class TestDefaultAttempts:
    def test_microdata_only_page_never_reaches_ai(self) -> None:
        client = GeminiClientStub(AI_REPLY)

        result = extract_recipe_from_url(URL, fetch=FetchStub(SIMPLE_SALAD_PAGE), client=client)

        assert result.success is True
        assert result.data.title == "Simple Salad"
        assert result.data.extraction_method is ExtractionMethod.MICRODATA
        assert [item.raw for item in result.data.ingredients] == [
            "1 head lettuce",
            "1 cucumber",
            "2 tbsp olive oil",
        ]
        assert client.calls == 0
