"""
Domain validators for slide generation requests.
"""

from insightdeck.domain.exceptions import InputValidationError, PayloadTooLargeError
from insightdeck.domain.models import SlideGenerationTask


class SlideRequestValidators:
    @staticmethod
    def validate_raw_data(raw_data: str, max_bytes: int) -> None:
        """Reject empty or oversized raw data before any backend call."""
        if not raw_data or not raw_data.strip():
            raise InputValidationError("Please provide some data to generate the slide")

        size = len(raw_data.encode("utf-8"))
        if size > max_bytes:
            raise PayloadTooLargeError(size, max_bytes)

    @staticmethod
    def validate_task(task: SlideGenerationTask, max_bytes: int) -> None:
        SlideRequestValidators.validate_raw_data(task.raw_data, max_bytes)
