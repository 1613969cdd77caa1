# recipe_extract/app/routers/extract.py
from __future__ import annotations

import logging
from functools import partial
from typing import Any

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.concurrency import run_in_threadpool

from recipe_extract.app.config import settings
from recipe_extract.app.deps import get_gemini_client, get_youtube_client
from recipe_extract.app.schemas.extract import (
    DietConversionRequest,
    IngredientItem,
    MergePagesRequest,
    UrlRequest,
)
from recipe_extract.services.coercion import normalize_category
from recipe_extract.services.cookbook import is_recipe_incomplete, merge_pages, scan_cookbook_page
from recipe_extract.services.diet import (
    DietRecipe,
    DietType,
    apply_conversion,
    convert_recipe_diet,
    diet_label,
    updated_dietary_tags,
)
from recipe_extract.services.extractor import extract_recipe_from_url
from recipe_extract.services.fetcher import fetch_recipe_url
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.ids import validate_recipe_url
from recipe_extract.services.types import CookbookPageRecipe, ParsedIngredient
from recipe_extract.services.youtube import YouTubeClient
from recipe_extract.services.youtube_flow import YouTubeExtractionFlow

log = logging.getLogger("extract")
router = APIRouter(prefix="/recipes", tags=["extract"])


def _to_parsed(items: list[IngredientItem]) -> list[ParsedIngredient]:
    return [
        ParsedIngredient(
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            category=normalize_category(item.category),
        )
        for item in items
    ]


@router.post("/validate-url")
def validate_url(payload: UrlRequest) -> dict[str, Any]:
    return validate_recipe_url(payload.url).to_dict()


@router.post("/extract-url")
async def extract_url(
    payload: UrlRequest,
    client: GeminiClient | None = Depends(get_gemini_client),
) -> dict[str, Any]:
    fetch = partial(fetch_recipe_url, timeout=settings.FETCH_TIMEOUT_SECONDS)
    result = await run_in_threadpool(extract_recipe_from_url, payload.url, fetch=fetch, client=client)
    if not result.success:
        log.info("URL extraction failed for %s: %s", payload.url, result.error)
    return result.to_dict()


@router.post("/youtube")
async def extract_youtube(
    payload: UrlRequest,
    youtube: YouTubeClient = Depends(get_youtube_client),
    client: GeminiClient | None = Depends(get_gemini_client),
) -> dict[str, Any]:
    flow = YouTubeExtractionFlow(youtube, client)
    await run_in_threadpool(flow.extract_from_url, payload.url)
    return flow.snapshot()


@router.post("/scan")
async def scan_page(
    image: UploadFile = File(...),
    client: GeminiClient | None = Depends(get_gemini_client),
) -> dict[str, Any]:
    data = await image.read()
    mime_type = image.content_type or "application/octet-stream"
    result = await run_in_threadpool(scan_cookbook_page, data, mime_type, client)
    response = result.to_dict()
    response["incomplete"] = bool(result.data and is_recipe_incomplete(result.data))
    return response


@router.post("/scan/merge")
def merge_scanned_pages(payload: MergePagesRequest) -> dict[str, Any]:
    pages = [
        CookbookPageRecipe(
            title=page.title,
            ingredients=_to_parsed(page.ingredients),
            instructions=page.instructions,
            servings=page.servings,
            prep_time=page.prepTime,
            cook_time=page.cookTime,
            page_number=page.pageNumber,
        )
        for page in payload.pages
    ]
    return merge_pages(pages).to_dict()


@router.post("/convert-diet")
async def convert_diet(
    payload: DietConversionRequest,
    client: GeminiClient | None = Depends(get_gemini_client),
) -> dict[str, Any]:
    diet = DietType(payload.dietType)
    recipe = DietRecipe(
        title=payload.title,
        ingredients=_to_parsed(payload.ingredients),
        instructions=payload.instructions,
        dietary_tags=payload.dietaryTags,
    )
    result = await run_in_threadpool(convert_recipe_diet, recipe, diet, client)
    response = result.to_dict()
    if result.success:
        response["label"] = diet_label(diet)
        response["convertedIngredients"] = [
            ingredient.to_dict() for ingredient in apply_conversion(recipe, result.ingredients)
        ]
        response["dietaryTags"] = updated_dietary_tags(recipe.dietary_tags, diet)
    return response
