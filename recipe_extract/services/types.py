from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IngredientCategory(str, Enum):
    MEAT = "meat"
    PRODUCE = "produce"
    DAIRY = "dairy"
    PANTRY = "pantry"
    SPICES = "spices"
    CONDIMENTS = "condiments"
    BREAD = "bread"
    OTHER = "other"


class ExtractionMethod(str, Enum):
    JSONLD = "jsonld"
    MICRODATA = "microdata"
    AI = "ai"


class ExtractionErrorType(str, Enum):
    INVALID_URL = "INVALID_URL"
    INVALID_VIDEO_ID = "INVALID_VIDEO_ID"
    FETCH_FAILED = "FETCH_FAILED"
    TIMEOUT = "TIMEOUT"
    PAYWALL_DETECTED = "PAYWALL_DETECTED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    NO_RECIPE_FOUND = "NO_RECIPE_FOUND"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    # Declined outcomes reported by the cookbook page scanner
    NOT_A_RECIPE = "NOT_A_RECIPE"
    POOR_QUALITY = "POOR_QUALITY"


# Keys of ExtractedRecipeData.confidence, in wire (camelCase) form.
CONFIDENCE_FIELDS = (
    "title",
    "imageUrl",
    "ingredients",
    "instructions",
    "servings",
    "prepTime",
    "cookTime",
)

DEFAULT_SERVINGS = 4
DEFAULT_QUANTITY = 1
DEFAULT_UNIT = "item"


@dataclass(frozen=True)
class ParsedIngredient:
    name: str
    quantity: float = DEFAULT_QUANTITY
    unit: str = DEFAULT_UNIT
    category: IngredientCategory = IngredientCategory.OTHER

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class RawIngredient:
    raw: str
    parsed: Optional[ParsedIngredient] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "parsed": self.parsed.to_dict() if self.parsed else None,
        }


@dataclass(frozen=True)
class ExtractedRecipeData:
    """Recipe produced by any extraction tier, with per-field confidence."""
    title: str
    image_url: Optional[str]
    ingredients: list[RawIngredient]
    instructions: list[str]
    servings: int
    prep_time: int
    cook_time: int
    confidence: dict[str, Confidence]
    extraction_method: ExtractionMethod

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "imageUrl": self.image_url,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "confidence": {key: value.value for key, value in self.confidence.items()},
            "extractionMethod": self.extraction_method.value,
        }


@dataclass(frozen=True)
class YouTubeExtractedRecipe:
    title: str
    ingredients: list[ParsedIngredient]
    instructions: list[str]
    servings: int
    prep_time: int
    cook_time: int
    confidence: Confidence
    extraction_notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "confidence": self.confidence.value,
            "extractionNotes": self.extraction_notes,
        }


@dataclass(frozen=True)
class VideoMetadata:
    video_id: str
    title: str
    description: str
    thumbnail_url: str
    duration: str
    duration_seconds: int
    view_count: int = 0
    published_at: Optional[str] = None
    channel_id: Optional[str] = None
    channel_title: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "description": self.description,
            "thumbnailUrl": self.thumbnail_url,
            "duration": self.duration,
            "durationSeconds": self.duration_seconds,
            "viewCount": self.view_count,
            "publishedAt": self.published_at,
            "channelId": self.channel_id,
            "channelTitle": self.channel_title,
        }


@dataclass(frozen=True)
class YouTubeRecipePreview:
    video_id: str
    video_title: str
    thumbnail_url: str
    source_url: str
    title: str
    ingredients: list[ParsedIngredient]
    instructions: list[str]
    servings: int
    prep_time: int
    cook_time: int
    confidence: Confidence
    extraction_notes: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "videoTitle": self.video_title,
            "thumbnailUrl": self.thumbnail_url,
            "sourceUrl": self.source_url,
            "title": self.title,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "confidence": self.confidence.value,
            "extractionNotes": self.extraction_notes,
        }


@dataclass(frozen=True)
class CookbookPageRecipe:
    title: str
    ingredients: list[ParsedIngredient]
    instructions: list[str]
    servings: int
    prep_time: int
    cook_time: int
    page_number: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "ingredients": [ingredient.to_dict() for ingredient in self.ingredients],
            "instructions": list(self.instructions),
            "servings": self.servings,
            "prepTime": self.prep_time,
            "cookTime": self.cook_time,
            "pageNumber": self.page_number,
        }


@dataclass(frozen=True)
class ExtractionError:
    type: ExtractionErrorType
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"type": self.type.value, "message": self.message}


@dataclass(frozen=True)
class ExtractionResult(Generic[T]):
    """Tagged outcome of an extraction: either data or a typed error, never both."""
    success: bool
    data: Optional[T] = None
    error: Optional[ExtractionError] = None
    source_url: Optional[str] = None

    @classmethod
    def ok(cls, data: T, source_url: str | None = None) -> "ExtractionResult[T]":
        return cls(success=True, data=data, error=None, source_url=source_url)

    @classmethod
    def fail(
        cls,
        error_type: ExtractionErrorType,
        message: str,
        source_url: str | None = None,
    ) -> "ExtractionResult[T]":
        return cls(
            success=False,
            data=None,
            error=ExtractionError(type=error_type, message=message),
            source_url=source_url,
        )

    def with_source(self, source_url: str) -> "ExtractionResult[T]":
        return ExtractionResult(
            success=self.success,
            data=self.data,
            error=self.error,
            source_url=source_url,
        )

    def to_dict(self) -> dict[str, Any]:
        data = self.data.to_dict() if self.data is not None else None
        return {
            "success": self.success,
            "data": data,
            "error": self.error.to_dict() if self.error else None,
            "sourceUrl": self.source_url,
        }


@dataclass
class UrlValidation:
    valid: bool
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "error": self.error}


@dataclass(frozen=True)
class ChannelIdentifier:
    type: str  # "channel" | "handle" | "custom"
    value: str


@dataclass
class QuotaUsage:
    date: str
    units_used: int = 0
    quota_limit: int = 10000
    operations: dict[str, int] = field(default_factory=dict)

    @property
    def remaining(self) -> int:
        return max(0, self.quota_limit - self.units_used)

    @property
    def percent_used(self) -> int:
        if self.quota_limit <= 0:
            return 100
        return round(self.units_used / self.quota_limit * 100)
