"""Tests for the slide generation orchestrator."""

import json

import pytest

from insightdeck.application.slide_generation import (
    SlideGenerationService,
    request_fingerprint,
)
from insightdeck.application.task_queue import TaskQueue
from insightdeck.domain.exceptions import (
    BackendError,
    ConfigurationError,
    InputValidationError,
    PayloadTooLargeError,
    QuotaExceededError,
    SlideGenerationError,
)
from insightdeck.domain.models import SlideGenerationTask
from tests._helpers.fakes import (
    KEY_POINTS,
    RECOMMENDATIONS,
    TITLE,
    VISUALIZATION,
    FakeLLM,
)


def make_service(llm, queue, **kwargs) -> SlideGenerationService:
    return SlideGenerationService(llm, queue, **kwargs)


class TestGenerateSlide:
    @pytest.mark.asyncio
    async def test_happy_path_assembles_slide(self, fake_llm, fast_queue, sample_task):
        # Arrange
        service = make_service(fake_llm, fast_queue)

        # Act
        slide = await service.generate_slide(sample_task)

        # Assert
        assert slide.title == "Revenue up 40% in 2024, fund expansion"
        assert slide.subtitle == "Growth supports expansion"
        assert slide.visual_type == "Line Chart"
        assert slide.visual_highlights == ["Q4 peak", "Trend line"]
        assert slide.key_points == ["Q4 revenue hit 140", "Every quarter grew", "No dips"]
        assert slide.recommendations == ["Expand sales team", "Raise Q1 targets"]
        assert slide.source == "Finance team"
        assert slide.audience == "General business audience"
        assert slide.style == "Professional"
        # Two upstream calls plus four sub-tasks
        assert len(fake_llm.calls) == 6

    @pytest.mark.asyncio
    async def test_defaults_when_optional_fields_missing(self, fake_llm, fast_queue):
        service = make_service(fake_llm, fast_queue)

        slide = await service.generate_slide(SlideGenerationTask(raw_data="a,b\n1,2"))

        assert slide.subtitle == "Key Insights"
        assert slide.source == "Data Analysis"

    @pytest.mark.asyncio
    async def test_oversized_payload_rejected_before_backend(self, fake_llm, fast_queue):
        service = make_service(fake_llm, fast_queue, max_payload_bytes=100)

        with pytest.raises(PayloadTooLargeError) as exc_info:
            await service.generate_slide(SlideGenerationTask(raw_data="x" * 101))

        assert exc_info.value.status_code == 413
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_blank_data_rejected(self, fake_llm, fast_queue):
        service = make_service(fake_llm, fast_queue)

        with pytest.raises(InputValidationError):
            await service.generate_slide(SlideGenerationTask(raw_data="   "))

        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_all_subtasks_failing_raises(self, fake_llm, fast_queue, sample_task):
        for marker in (TITLE, KEY_POINTS, VISUALIZATION, RECOMMENDATIONS):
            fake_llm.replace(marker, BackendError("down"))
        service = make_service(fake_llm, fast_queue)

        with pytest.raises(SlideGenerationError):
            await service.generate_slide(sample_task)

        # Each sub-task: one attempt plus three retries
        assert fake_llm.calls_matching(TITLE) == 4

    @pytest.mark.asyncio
    async def test_partial_failure_uses_fallback(self, fake_llm, fast_queue, sample_task):
        fake_llm.replace(RECOMMENDATIONS, BackendError("down"))
        service = make_service(fake_llm, fast_queue)

        slide = await service.generate_slide(sample_task)

        assert slide.title == "Revenue up 40% in 2024, fund expansion"
        assert slide.recommendations == ["Analysis pending"]

    @pytest.mark.asyncio
    async def test_partial_failure_rejected_when_disallowed(
        self, fake_llm, fast_queue, sample_task
    ):
        fake_llm.replace(RECOMMENDATIONS, BackendError("down"))
        service = make_service(fake_llm, fast_queue, allow_partial_results=False)

        with pytest.raises(SlideGenerationError):
            await service.generate_slide(sample_task)

    @pytest.mark.asyncio
    async def test_quota_error_surfaces(self, fake_llm, fast_queue, sample_task):
        fake_llm.replace(KEY_POINTS, QuotaExceededError("quota", vendor_code="insufficient_quota"))
        service = make_service(fake_llm, fast_queue)

        with pytest.raises(QuotaExceededError):
            await service.generate_slide(sample_task)

        assert fake_llm.calls_matching(KEY_POINTS) == 1

    @pytest.mark.asyncio
    async def test_configuration_error_surfaces(self, fake_llm, fast_queue, sample_task):
        fake_llm.replace(TITLE, ConfigurationError("no key"))
        service = make_service(fake_llm, fast_queue)

        with pytest.raises(ConfigurationError):
            await service.generate_slide(sample_task)

    @pytest.mark.asyncio
    async def test_unusable_title_falls_back_to_user_title(
        self, fake_llm, fast_queue, sample_task
    ):
        fake_llm.replace(TITLE, "no json at all")
        service = make_service(fake_llm, fast_queue)

        slide = await service.generate_slide(sample_task)

        assert slide.title == "Quarterly revenue"

    @pytest.mark.asyncio
    async def test_lists_are_truncated(self, fake_llm, fast_queue, sample_task):
        fake_llm.replace(KEY_POINTS, json.dumps({"points": ["1", "2", "3", "4", "5"]}))
        fake_llm.replace(RECOMMENDATIONS, json.dumps({"recommendations": ["a", "b", "c"]}))
        service = make_service(fake_llm, fast_queue)

        slide = await service.generate_slide(sample_task)

        assert slide.key_points == ["1", "2", "3"]
        assert slide.recommendations == ["a", "b"]


class TestRequestIdentity:
    def test_fingerprint_is_stable_per_content(self, sample_task):
        same = SlideGenerationTask(**sample_task.model_dump())
        other = SlideGenerationTask(raw_data="different")
        assert request_fingerprint(sample_task) == request_fingerprint(same)
        assert request_fingerprint(sample_task) != request_fingerprint(other)

    @pytest.mark.asyncio
    async def test_identical_requests_reuse_cached_subtasks(self, fake_llm, sample_task):
        service = make_service(fake_llm, TaskQueue(), cache_identical_requests=True)

        first = await service.generate_slide(sample_task)
        second = await service.generate_slide(sample_task)

        assert first == second
        assert fake_llm.calls_matching(TITLE) == 1

    @pytest.mark.asyncio
    async def test_requests_are_independent_by_default(self, fake_llm, sample_task):
        service = make_service(fake_llm, TaskQueue())

        await service.generate_slide(sample_task)
        await service.generate_slide(sample_task)

        assert fake_llm.calls_matching(TITLE) == 2
