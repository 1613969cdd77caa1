# recipe_extract/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

import logging

from fastapi import Depends
from supabase import Client, create_client

from recipe_extract.app.config import settings
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.quota import (
    InMemoryQuotaRepository,
    QuotaRepository,
    SupabaseQuotaRepository,
    YouTubeQuotaService,
)
from recipe_extract.services.youtube import YouTubeClient

logger = logging.getLogger(__name__)

_client: Client | None = None
_gemini: GeminiClient | None = None
_quota: YouTubeQuotaService | None = None


def get_supabase() -> Client | None:
    global _client
    if _client is None and settings.supabase_configured:
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_gemini_client() -> GeminiClient | None:
    """Shared model client, or None when GEMINI_API_KEY is not set."""
    global _gemini
    if _gemini is None and settings.gemini_api_key:
        _gemini = GeminiClient(
            settings.gemini_api_key,
            model_name=settings.GEMINI_MODEL,
            timeout_seconds=settings.GENERATION_TIMEOUT_SECONDS,
        )
    return _gemini


def get_quota_service(supa: Client | None = Depends(get_supabase)) -> YouTubeQuotaService:
    global _quota
    if _quota is None:
        repository: QuotaRepository
        if supa is not None:
            repository = SupabaseQuotaRepository(supa)
        else:
            logger.info("Supabase not configured, tracking YouTube quota in memory")
            repository = InMemoryQuotaRepository()
        _quota = YouTubeQuotaService(repository, daily_limit=settings.YOUTUBE_DAILY_QUOTA)
    return _quota


def get_youtube_client(quota: YouTubeQuotaService = Depends(get_quota_service)) -> YouTubeClient:
    return YouTubeClient(settings.youtube_api_key, quota, timeout=settings.FETCH_TIMEOUT_SECONDS)
