"""
Sub-task execution against a text-generation backend.
"""

import json
import re
import time
from typing import Any, Dict, Mapping, Optional

from insightdeck.application.normalizer import fallback_for
from insightdeck.application.ports import LLMServicePort
from insightdeck.application.prompts import SlidePrompts
from insightdeck.domain.models import SubTask, SubTaskResult, SubTaskType
from insightdeck.infra.config.logging_config import get_logger
from insightdeck.infra.metrics import SUBTASK_FALLBACKS, observe_step

_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def clean_json_response(content: str) -> str:
    """Best-effort extraction of a JSON object from a model reply.

    Drops markdown fences and surrounding chatter, then keeps the text between
    the first ``{`` and the last ``}`` when both exist.
    """
    if "```" in content:
        content = _FENCE.sub("", content)
    content = content.strip()

    start = content.find("{")
    end = content.rfind("}")
    if start != -1 and end > start:
        content = content[start : end + 1]
    return content


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_json_object(content: str) -> Optional[Dict[str, Any]]:
    """Parse cleaned reply text, returning None unless it is a strict JSON object.

    ``NaN`` and ``Infinity`` are refused so the result always re-serializes
    as valid JSON.
    """
    try:
        parsed = json.loads(
            clean_json_response(content), parse_constant=_reject_constant
        )
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


class SubTaskExecutor:
    """Runs one sub-task and guarantees a JSON result.

    Content problems (unparseable or non-object replies) are absorbed into the
    type's fallback payload. Transport, quota and configuration errors raised
    by the backend propagate so the task queue can apply its retry policy.
    """

    def __init__(
        self,
        llm: LLMServicePort,
        models: Optional[Mapping[SubTaskType, str]] = None,
        temperature: float = 0.7,
        max_tokens: int = 400,
    ) -> None:
        self.llm = llm
        self.models = dict(models or {})
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._log = get_logger("executor")

    def model_for(self, subtask_type: SubTaskType) -> str:
        return self.models.get(subtask_type, self.llm.fast_model)

    async def execute(self, subtask: SubTask) -> SubTaskResult:
        model = self.model_for(subtask.type)
        self._log.info(
            "subtask.request",
            type=subtask.type.value,
            model=model,
            prompt_length=len(subtask.prompt),
        )
        started = time.monotonic()
        raw = await self.llm.complete(
            SlidePrompts.subtask_system_prompt(),
            subtask.prompt,
            model=model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        observe_step(f"subtask_{subtask.type.value}", time.monotonic() - started)

        parsed = parse_json_object(raw or "")
        if parsed is None:
            SUBTASK_FALLBACKS.labels(type=subtask.type.value, reason="invalid_json").inc()
            self._log.warning(
                "subtask.json.invalid",
                type=subtask.type.value,
                raw_preview=(raw or "")[:100],
                has_markdown="```" in (raw or ""),
            )
            parsed = fallback_for(subtask.type)

        return SubTaskResult(type=subtask.type, content=json.dumps(parsed))
