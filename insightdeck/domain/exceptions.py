"""
Domain exception hierarchy.

Every error carries a stable ``code``, a coarse ``error_type`` used in the API
error envelope, the HTTP status it maps to, and whether the task queue may
retry the operation that raised it.
"""

from typing import Optional


class InsightDeckError(Exception):
    """Base class for all application errors."""

    code = "INTERNAL_ERROR"
    error_type = "internal"
    status_code = 500
    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InputValidationError(InsightDeckError):
    """Raised when the slide request is malformed or missing required data."""

    code = "INVALID_INPUT"
    error_type = "validation"
    status_code = 400


class PayloadTooLargeError(InsightDeckError):
    """Raised when the raw data exceeds the accepted payload size."""

    code = "PAYLOAD_TOO_LARGE"
    error_type = "payload_too_large"
    status_code = 413

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"Raw data is {size} bytes, which exceeds the {limit} byte limit"
        )
        self.size = size
        self.limit = limit


class ConfigurationError(InsightDeckError):
    """Raised when a required credential or backend setting is missing or rejected."""

    code = "CONFIGURATION_ERROR"
    error_type = "configuration"
    status_code = 500


class QuotaExceededError(InsightDeckError):
    """Raised when a backend reports exhausted quota or a rate limit."""

    code = "QUOTA_EXCEEDED"
    error_type = "quota_exceeded"
    status_code = 429

    def __init__(self, message: str, vendor_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.vendor_code = vendor_code


class BackendError(InsightDeckError):
    """Transport-level backend failure (network, timeout, 5xx)."""

    code = "BACKEND_ERROR"
    error_type = "upstream"
    status_code = 503
    retryable = True


class BackendRejectedError(BackendError):
    """The backend refused the request itself (4xx other than auth or quota)."""

    code = "BACKEND_REJECTED"
    status_code = 502
    retryable = False


class RetryExhaustedError(InsightDeckError):
    """Raised by the task queue once a task has used up its retries."""

    code = "RETRY_EXHAUSTED"
    error_type = "upstream"
    status_code = 503

    def __init__(self, item_id: str, attempts: int, last_error: BaseException):
        super().__init__(
            f"Task {item_id} failed after {attempts} attempts: {last_error}"
        )
        self.item_id = item_id
        self.attempts = attempts
        self.last_error = last_error


class SlideGenerationError(InsightDeckError):
    """Raised when no usable slide could be produced for a request."""

    code = "SLIDE_GENERATION_FAILED"
    error_type = "upstream"
    status_code = 503


class GenerationTimeoutError(InsightDeckError):
    """Raised when a request does not finish within its wall-clock budget."""

    code = "TIMEOUT"
    error_type = "timeout"
    status_code = 408

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Slide generation did not finish within {timeout_seconds:g} seconds"
        )
        self.timeout_seconds = timeout_seconds
