"""Domain layer: value objects, exceptions and validators."""

from .exceptions import (
    BackendError,
    BackendRejectedError,
    ConfigurationError,
    GenerationTimeoutError,
    InputValidationError,
    InsightDeckError,
    PayloadTooLargeError,
    QuotaExceededError,
    RetryExhaustedError,
    SlideGenerationError,
)
from .models import (
    ConsultingFramework,
    DataSummary,
    SlideGenerationTask,
    SlideResult,
    SubTask,
    SubTaskResult,
    SubTaskType,
)

__all__ = [
    "BackendError",
    "BackendRejectedError",
    "ConfigurationError",
    "GenerationTimeoutError",
    "InputValidationError",
    "InsightDeckError",
    "PayloadTooLargeError",
    "QuotaExceededError",
    "RetryExhaustedError",
    "SlideGenerationError",
    "ConsultingFramework",
    "DataSummary",
    "SlideGenerationTask",
    "SlideResult",
    "SubTask",
    "SubTaskResult",
    "SubTaskType",
]
