from __future__ import annotations

from recipe_extract.services.types import ExtractionError, ExtractionErrorType


class ServiceError(Exception):
    error_type: ExtractionErrorType = ExtractionErrorType.EXTRACTION_FAILED

    def to_error(self) -> ExtractionError:
        return ExtractionError(type=self.error_type, message=str(self))


class InvalidURLError(ServiceError):
    error_type = ExtractionErrorType.INVALID_URL


class InvalidVideoIdError(ServiceError):
    error_type = ExtractionErrorType.INVALID_VIDEO_ID


class FetchFailedError(ServiceError):
    error_type = ExtractionErrorType.FETCH_FAILED


class PaywallDetectedError(ServiceError):
    error_type = ExtractionErrorType.PAYWALL_DETECTED


class QuotaExceededError(ServiceError):
    error_type = ExtractionErrorType.QUOTA_EXCEEDED


class RateLimitedError(ServiceError):
    error_type = ExtractionErrorType.QUOTA_EXCEEDED


class ConfigurationError(ServiceError):
    error_type = ExtractionErrorType.CONFIGURATION_ERROR


class GenerationError(ServiceError):
    error_type = ExtractionErrorType.EXTRACTION_FAILED


class InvalidAIResponseError(GenerationError):
    def __init__(self, message: str = "AI response was not valid JSON"):
        super().__init__(message)


class NetworkTimeoutError(ServiceError):
    error_type = ExtractionErrorType.TIMEOUT

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


def error_type_for(error: Exception) -> ExtractionErrorType:
    if isinstance(error, ServiceError):
        return error.error_type
    return ExtractionErrorType.EXTRACTION_FAILED
