"""
Slide generation orchestration.

Ties together the decomposer, the task queue, the sub-task executor and the
normalizer for one request/response cycle:

1. Validate the request (size and presence of raw data) before any backend call
2. Decompose it into four prioritized sub-tasks
3. Run every sub-task through the shared task queue as ``{request_id}-{type}``
4. Normalize each result, substituting fallbacks for failed sub-tasks
5. Assemble the final slide, filling user-supplied defaults
"""

import asyncio
import hashlib
import json
import time
from typing import Any, Dict, List, Optional
from uuid import uuid4

from insightdeck.application.decomposer import SubTaskDecomposer
from insightdeck.application.executor import SubTaskExecutor
from insightdeck.application.normalizer import (
    DEFAULT_TITLE,
    DEFAULT_VISUAL_TYPE,
    fallback_for,
    normalize,
)
from insightdeck.application.ports import LLMServicePort
from insightdeck.application.task_queue import TaskQueue
from insightdeck.domain.exceptions import (
    ConfigurationError,
    InsightDeckError,
    QuotaExceededError,
    SlideGenerationError,
)
from insightdeck.domain.models import (
    SlideGenerationTask,
    SlideResult,
    SubTask,
    SubTaskResult,
    SubTaskType,
)
from insightdeck.domain.validators import SlideRequestValidators
from insightdeck.infra.config.logging_config import bind_context, get_logger
from insightdeck.infra.metrics import (
    SLIDES_COMPLETED,
    SLIDES_FAILED,
    SLIDES_STARTED,
    SUBTASK_FALLBACKS,
    observe_step,
)

MAX_KEY_POINTS = 3
MAX_RECOMMENDATIONS = 2

# Errors that must reach the caller even when other sub-tasks succeeded.
_SURFACED_ERRORS = (QuotaExceededError, ConfigurationError)


def request_fingerprint(task: SlideGenerationTask) -> str:
    """Stable id for a task's content, used when identical requests share cache."""
    data = json.dumps(task.model_dump(), sort_keys=True, ensure_ascii=False)
    return hashlib.md5(data.encode("utf-8")).hexdigest()


class SlideGenerationService:
    def __init__(
        self,
        llm: LLMServicePort,
        queue: TaskQueue[SubTaskResult],
        decomposer: Optional[SubTaskDecomposer] = None,
        executor: Optional[SubTaskExecutor] = None,
        max_payload_bytes: int = 100_000,
        allow_partial_results: bool = True,
        cache_identical_requests: bool = False,
    ) -> None:
        self.llm = llm
        self.queue = queue
        self.decomposer = decomposer or SubTaskDecomposer(llm)
        self.executor = executor or SubTaskExecutor(llm)
        self.max_payload_bytes = max_payload_bytes
        self.allow_partial_results = allow_partial_results
        self.cache_identical_requests = cache_identical_requests
        self._log = get_logger("service.slide_generation")

    @classmethod
    def from_settings(
        cls, llm: LLMServicePort, queue: TaskQueue[SubTaskResult], settings: Any
    ) -> "SlideGenerationService":
        return cls(
            llm=llm,
            queue=queue,
            decomposer=SubTaskDecomposer(llm, chunk_size=settings.data_chunk_size),
            executor=SubTaskExecutor(
                llm,
                temperature=settings.llm_temperature,
                max_tokens=settings.llm_max_tokens,
            ),
            max_payload_bytes=settings.max_payload_bytes,
            allow_partial_results=settings.allow_partial_results,
            cache_identical_requests=settings.cache_identical_requests,
        )

    def new_request_id(self, task: SlideGenerationTask) -> str:
        if self.cache_identical_requests:
            return request_fingerprint(task)
        return uuid4().hex

    async def generate_slide(self, task: SlideGenerationTask) -> SlideResult:
        """Produce one normalized slide for ``task``.

        Raises:
            InputValidationError / PayloadTooLargeError: before any backend call
            QuotaExceededError / ConfigurationError: from any sub-task
            SlideGenerationError: when no sub-task produced a result
        """
        SlideRequestValidators.validate_task(task, self.max_payload_bytes)

        request_id = self.new_request_id(task)
        bind_context(slide_request_id=request_id)
        SLIDES_STARTED.inc()
        started = time.monotonic()
        self._log.info(
            "slide.start",
            data_length=len(task.raw_data),
            has_title=bool(task.title),
            has_so_what=bool(task.so_what),
        )

        try:
            subtasks = await self.decomposer.decompose(task)
            observe_step("decompose", time.monotonic() - started)

            fan_out_started = time.monotonic()
            outcomes = await asyncio.gather(
                *(self._submit(request_id, subtask) for subtask in subtasks),
                return_exceptions=True,
            )
            observe_step("subtasks", time.monotonic() - fan_out_started)

            payloads = self._collect(subtasks, outcomes)
            slide = self._assemble(task, payloads)
        except InsightDeckError as exc:
            SLIDES_FAILED.labels(error_type=exc.error_type).inc()
            self._log.warning("slide.failed", error=exc.message, code=exc.code)
            raise
        except Exception:
            SLIDES_FAILED.labels(error_type="internal").inc()
            self._log.exception("slide.error")
            raise

        SLIDES_COMPLETED.inc()
        observe_step("generate_slide", time.monotonic() - started)
        self._log.info(
            "slide.success",
            key_points=len(slide.key_points),
            recommendations=len(slide.recommendations),
            visual_type=slide.visual_type,
        )
        return slide

    async def _submit(self, request_id: str, subtask: SubTask) -> SubTaskResult:
        return await self.queue.enqueue(
            f"{request_id}-{subtask.type.value}",
            lambda: self.executor.execute(subtask),
            subtask.priority,
        )

    def _collect(
        self, subtasks: List[SubTask], outcomes: List[Any]
    ) -> Dict[SubTaskType, Dict[str, Any]]:
        payloads: Dict[SubTaskType, Dict[str, Any]] = {}
        failures: List[BaseException] = []

        for subtask, outcome in zip(subtasks, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                failures.append(outcome)
                SUBTASK_FALLBACKS.labels(type=subtask.type.value, reason="failed").inc()
                self._log.warning(
                    "subtask.failed",
                    type=subtask.type.value,
                    error=str(outcome),
                    error_class=type(outcome).__name__,
                )
                payloads[subtask.type] = fallback_for(subtask.type)
                continue
            payloads[subtask.type] = normalize(
                subtask.type, _safe_loads(outcome.content, subtask.type)
            )

        if not failures:
            return payloads

        for failure in failures:
            if isinstance(failure, _SURFACED_ERRORS):
                raise failure
        if len(failures) == len(subtasks):
            raise SlideGenerationError(
                f"All {len(subtasks)} sub-tasks failed: {failures[0]}"
            ) from failures[0]
        if not self.allow_partial_results:
            raise SlideGenerationError(
                f"{len(failures)} of {len(subtasks)} sub-tasks failed: {failures[0]}"
            ) from failures[0]

        self._log.warning(
            "slide.partial", failed=len(failures), total=len(subtasks)
        )
        return payloads

    def _assemble(
        self, task: SlideGenerationTask, payloads: Dict[SubTaskType, Dict[str, Any]]
    ) -> SlideResult:
        def section(kind: SubTaskType) -> Dict[str, Any]:
            return payloads.get(kind) or normalize(kind, fallback_for(kind))

        title = section(SubTaskType.TITLE).get("title")
        if not title or title == DEFAULT_TITLE:
            # The model gave nothing usable; prefer the author's own title.
            title = task.title or DEFAULT_TITLE
        visualization = section(SubTaskType.VISUALIZATION)
        key_points = section(SubTaskType.KEY_POINTS).get("points") or []
        recommendations = (
            section(SubTaskType.RECOMMENDATIONS).get("recommendations") or []
        )

        return SlideResult(
            title=title,
            subtitle=task.so_what or "Key Insights",
            visual_type=visualization.get("type") or DEFAULT_VISUAL_TYPE,
            visual_highlights=visualization.get("keyElements") or [],
            key_points=key_points[:MAX_KEY_POINTS],
            recommendations=recommendations[:MAX_RECOMMENDATIONS],
            source=task.source or "Data Analysis",
            audience=task.audience or "General business audience",
            style=task.style or "Professional",
        )


def _safe_loads(content: str, subtask_type: SubTaskType) -> Any:
    try:
        return json.loads(content)
    except (json.JSONDecodeError, TypeError):
        return fallback_for(subtask_type)
