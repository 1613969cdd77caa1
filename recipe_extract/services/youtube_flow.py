from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from recipe_extract.services.ai_extract import YouTubeExtractionOutcome, extract_recipe_from_youtube
from recipe_extract.services.errors import NetworkTimeoutError, ServiceError
from recipe_extract.services.fetcher import fetch_transcript_text
from recipe_extract.services.gemini_client import GeminiClient
from recipe_extract.services.ids import build_youtube_url, extract_video_id
from recipe_extract.services.types import (
    ExtractionError,
    ExtractionErrorType,
    VideoMetadata,
    YouTubeRecipePreview,
)

logger = logging.getLogger(__name__)

NO_RECIPE_MESSAGE = "This video does not appear to contain a recipe. You can enter it manually."
INVALID_URL_MESSAGE = "Could not extract video ID from URL"
TIMEOUT_MESSAGE = "YouTube took too long to respond. Please try again."

CaptionFetcher = Callable[[str], Optional[str]]
RecipeExtractor = Callable[[str, str, Optional[str], Optional[GeminiClient]], YouTubeExtractionOutcome]


class MetadataSource(Protocol):
    def fetch_video_metadata(self, video_id: str) -> VideoMetadata: ...


class FlowStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ExtractionState:
    status: FlowStatus = FlowStatus.IDLE
    video_metadata: Optional[VideoMetadata] = None
    recipe_preview: Optional[YouTubeRecipePreview] = None
    error: Optional[ExtractionError] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "videoMetadata": self.video_metadata.to_dict() if self.video_metadata else None,
            "recipePreview": self.recipe_preview.to_dict() if self.recipe_preview else None,
            "error": self.error.to_dict() if self.error else None,
        }


IDLE_STATE = ExtractionState()


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def _error_state(
    error_type: ExtractionErrorType,
    message: str,
    metadata: VideoMetadata | None = None,
) -> ExtractionState:
    return ExtractionState(
        status=FlowStatus.ERROR,
        video_metadata=metadata,
        error=ExtractionError(type=error_type, message=message),
    )


def _service_error_state(error: ServiceError, metadata: VideoMetadata | None = None) -> ExtractionState:
    if isinstance(error, NetworkTimeoutError):
        return _error_state(ExtractionErrorType.TIMEOUT, TIMEOUT_MESSAGE, metadata)
    return ExtractionState(status=FlowStatus.ERROR, video_metadata=metadata, error=error.to_error())


class YouTubeExtractionFlow:
    """
    State machine for turning a YouTube video into an editable recipe preview.

    idle -> fetching -> extracting -> success | error. Every run owns a
    CancellationToken; reset() or a newer run cancels it, and a cancelled
    run never writes state again.
    """

    def __init__(
        self,
        youtube: MetadataSource,
        client: GeminiClient | None,
        *,
        fetch_captions: CaptionFetcher = fetch_transcript_text,
        extract: RecipeExtractor = extract_recipe_from_youtube,
    ) -> None:
        self._youtube = youtube
        self._client = client
        self._fetch_captions = fetch_captions
        self._extract = extract
        self._lock = threading.Lock()
        self._state = IDLE_STATE
        self._token: CancellationToken | None = None

    @property
    def state(self) -> ExtractionState:
        with self._lock:
            return self._state

    def snapshot(self) -> dict[str, Any]:
        return self.state.to_dict()

    def _begin(self, state: ExtractionState) -> CancellationToken:
        token = CancellationToken()
        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._token = token
            self._state = state
        return token

    def _commit(self, token: CancellationToken, state: ExtractionState) -> bool:
        with self._lock:
            if token.cancelled or token is not self._token:
                logger.info("Discarding result of a cancelled YouTube extraction")
                return False
            self._state = state
            return True

    def reset(self) -> ExtractionState:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
                self._token = None
            self._state = IDLE_STATE
            return self._state

    def extract_from_url(self, url: str) -> ExtractionState:
        video_id = extract_video_id(url)
        if not video_id:
            self._begin(_error_state(ExtractionErrorType.INVALID_URL, INVALID_URL_MESSAGE))
            return self.state
        return self.extract_from_video_id(video_id)

    def extract_from_video_id(self, video_id: str) -> ExtractionState:
        token = self._begin(ExtractionState(status=FlowStatus.FETCHING))
        try:
            self._run(token, video_id)
        except ServiceError as error:
            self._commit(token, _service_error_state(error, self._current_metadata(token)))
        except Exception as error:
            logger.exception("Error during YouTube extraction of %s", video_id)
            self._commit(
                token,
                _error_state(
                    ExtractionErrorType.EXTRACTION_FAILED,
                    str(error) or "An unexpected error occurred",
                    self._current_metadata(token),
                ),
            )
        return self.state

    def _current_metadata(self, token: CancellationToken) -> VideoMetadata | None:
        with self._lock:
            return self._state.video_metadata if token is self._token else None

    def _read_captions(self, video_id: str) -> str | None:
        try:
            return self._fetch_captions(video_id)
        except Exception as error:
            logger.warning("Could not fetch captions for %s: %s", video_id, error)
            return None

    def _run(self, token: CancellationToken, video_id: str) -> None:
        metadata = self._youtube.fetch_video_metadata(video_id)
        if not self._commit(token, ExtractionState(status=FlowStatus.EXTRACTING, video_metadata=metadata)):
            return

        captions = self._read_captions(video_id)
        if token.cancelled:
            return

        outcome = self._extract(metadata.title, metadata.description, captions, self._client)
        if not outcome.success:
            error = outcome.error or ExtractionError(
                ExtractionErrorType.EXTRACTION_FAILED, "Failed to extract recipe"
            )
            self._commit(
                token, ExtractionState(status=FlowStatus.ERROR, video_metadata=metadata, error=error)
            )
            return

        if not outcome.is_recipe or outcome.recipe is None:
            self._commit(token, _error_state(ExtractionErrorType.NO_RECIPE_FOUND, NO_RECIPE_MESSAGE, metadata))
            return

        recipe = outcome.recipe
        preview = YouTubeRecipePreview(
            video_id=video_id,
            video_title=metadata.title,
            thumbnail_url=metadata.thumbnail_url,
            source_url=build_youtube_url(video_id),
            title=recipe.title,
            ingredients=list(recipe.ingredients),
            instructions=list(recipe.instructions),
            servings=recipe.servings,
            prep_time=recipe.prep_time,
            cook_time=recipe.cook_time,
            confidence=recipe.confidence,
            extraction_notes=recipe.extraction_notes,
        )
        self._commit(
            token,
            ExtractionState(status=FlowStatus.SUCCESS, video_metadata=metadata, recipe_preview=preview),
        )

    def update_recipe_preview(self, **changes: Any) -> ExtractionState:
        """Apply user edits to the preview; a no-op unless a preview exists."""
        with self._lock:
            preview = self._state.recipe_preview
            if preview is None:
                return self._state
            self._state = dataclasses.replace(
                self._state, recipe_preview=dataclasses.replace(preview, **changes)
            )
            return self._state
