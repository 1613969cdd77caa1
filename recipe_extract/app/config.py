from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    YOUTUBE_API_KEY: Optional[SecretStr] = None
    FETCH_TIMEOUT_SECONDS: float = 30.0
    GENERATION_TIMEOUT_SECONDS: float = 60.0
    YOUTUBE_DAILY_QUOTA: int = 10000
    # Both set: quota usage persisted in Supabase; otherwise kept in process
    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:8081"],
    )

    @property
    def gemini_api_key(self) -> str | None:
        return self.GEMINI_API_KEY.get_secret_value() if self.GEMINI_API_KEY else None

    @property
    def youtube_api_key(self) -> str | None:
        return self.YOUTUBE_API_KEY.get_secret_value() if self.YOUTUBE_API_KEY else None

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)


settings = Settings()
