"""Global test configuration and fixtures."""

import os

import pytest

# Set test environment before settings are first read
os.environ["ENVIRONMENT"] = "testing"
os.environ["LLM_BACKEND"] = "mock"
os.environ["LOG_FORMAT"] = "console"

from insightdeck.application.task_queue import TaskQueue  # noqa: E402
from insightdeck.domain.models import SlideGenerationTask  # noqa: E402
from tests._helpers.fakes import FakeLLM  # noqa: E402

SAMPLE_CSV = "quarter,revenue\nQ1,100\nQ2,110\nQ3,125\nQ4,140"


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fast_queue() -> TaskQueue:
    """Queue with millisecond backoff so retry tests stay quick."""
    return TaskQueue(max_concurrent=3, max_retries=3, base_backoff=0.001, max_backoff=0.01)


@pytest.fixture
def sample_task() -> SlideGenerationTask:
    return SlideGenerationTask(
        raw_data=SAMPLE_CSV,
        title="Quarterly revenue",
        so_what="Growth supports expansion",
        source="Finance team",
    )

