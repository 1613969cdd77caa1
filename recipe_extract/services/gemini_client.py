from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError, UnknownApiResponseError

from recipe_extract.services.errors import (
    ConfigurationError,
    GenerationError,
    InvalidAIResponseError,
    NetworkTimeoutError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
DEFAULT_TIMEOUT_SECONDS = 60.0
PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str


def prompt_path(name: str) -> Path:
    return PROMPTS_DIR / name


def _is_rate_limited_error(exc: Exception) -> bool:
    status_code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
    if status_code == 429:
        return True
    return "RESOURCE_EXHAUSTED" in str(exc)


def first_candidate_text(response: Any) -> str | None:
    """Text of candidates[0].content.parts[0], or None when any level is missing."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) if content is not None else None
    if not parts:
        return None
    text = getattr(parts[0], "text", None)
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def load_json_reply(text: str) -> Any:
    cleaned = _FENCE_RE.sub("", text.strip())
    try:
        return json.loads(cleaned)
    except (TypeError, ValueError) as error:
        logger.error("Failed to parse Gemini response as JSON: %.200s", text)
        raise InvalidAIResponseError() from error


class GeminiClient:
    def __init__(
        self,
        api_key: str | None,
        model_name: str = DEFAULT_MODEL_NAME,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise ConfigurationError("AI extraction is not configured")
        self.model_name = model_name
        self.timeout_seconds = timeout_seconds
        self._client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

    def _load_system_prompt(self, file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError as not_found_error:
            raise ConfigurationError(f"Prompt file not found: {file_path}") from not_found_error
        except OSError as io_error:
            raise ConfigurationError(f"Unable to read prompt file: {io_error}") from io_error

    def _build_contents(self, user_prompt: str, image: ImageInput | None) -> list[Any]:
        contents: list[Any] = [user_prompt]
        if image is not None:
            contents.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))
        return contents

    def generate_json(
        self,
        user_prompt: str,
        *,
        system_prompt_path: Path | None = None,
        image: ImageInput | None = None,
        temperature: float = 0.1,
        max_output_tokens: int = 8192,
    ) -> str:
        system_instruction = (
            self._load_system_prompt(system_prompt_path) if system_prompt_path else None
        )
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
            top_p=0.95,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json",
        )

        try:
            response = self._client.models.generate_content(
                model=self.model_name,
                contents=self._build_contents(user_prompt, image),
                config=config,
            )
        except (httpx.TimeoutException, TimeoutError) as error:
            raise NetworkTimeoutError(self.model_name, self.timeout_seconds) from error
        except APIError as error:
            if _is_rate_limited_error(error):
                raise RateLimitedError(
                    "Gemini API limit reached. Please try again in a few moments."
                ) from error
            logger.error("Gemini API error: %s", error)
            raise GenerationError(f"AI extraction failed: {error.code}") from error
        except httpx.HTTPError as error:
            raise GenerationError(f"AI extraction error: {error}") from error
        except UnknownApiResponseError as error:
            logger.error("Unreadable Gemini API response: %s", error)
            raise GenerationError("AI returned an unreadable response") from error

        text = first_candidate_text(response)
        if text is None:
            raise GenerationError("AI returned empty response")
        return text
