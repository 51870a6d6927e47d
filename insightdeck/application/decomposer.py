"""
Splits one slide request into prioritized sub-tasks.

Two cheap upstream calls (data analysis and a visualization suggestion) run
first and concurrently; their output seeds the prompts of the four downstream
sub-tasks so those stay short and focused.
"""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from insightdeck.application.executor import parse_json_object
from insightdeck.application.ports import LLMServicePort
from insightdeck.application.prompts import SlidePrompts
from insightdeck.domain.exceptions import ConfigurationError
from insightdeck.domain.models import (
    ConsultingFramework,
    DataSummary,
    SlideGenerationTask,
    SubTask,
    SubTaskType,
)
from insightdeck.infra.config.logging_config import get_logger

# Scheduling priority only; all four may run at once.
SUBTASK_PRIORITIES = {
    SubTaskType.TITLE: 4,
    SubTaskType.KEY_POINTS: 3,
    SubTaskType.VISUALIZATION: 2,
    SubTaskType.RECOMMENDATIONS: 1,
}


def split_data(data: str, chunk_size: int) -> List[str]:
    """Split tabular text into chunks that each repeat the header line."""
    lines = data.split("\n")
    header, rows = lines[0], lines[1:]
    if not rows:
        return [data]

    chunks: List[str] = []
    current: List[str] = []
    current_length = len(header)
    for row in rows:
        if current and current_length + len(row) > chunk_size:
            chunks.append("\n".join([header, *current]))
            current = []
            current_length = len(header)
        current.append(row)
        current_length += len(row)

    if current:
        chunks.append("\n".join([header, *current]))
    return chunks


def choose_framework(summary: DataSummary) -> ConsultingFramework:
    """Pick a consulting framework from the shape of the data summary."""
    overview = summary.overview.lower()
    if summary.trends and summary.key_metrics:
        return ConsultingFramework(
            type="driver-tree",
            elements=["Metrics", "Trends", "Drivers", "Implications"],
        )
    if "compared" in overview or "versus" in overview:
        return ConsultingFramework(
            type="mece", elements=["Categories", "Comparisons", "Insights"]
        )
    return ConsultingFramework(
        type="pyramid",
        elements=["Conclusion", "Supporting Points", "Data Foundation"],
    )


class SubTaskDecomposer:
    def __init__(
        self,
        llm: LLMServicePort,
        chunk_size: int = 4000,
        analysis_max_tokens: int = 500,
        visualization_max_tokens: int = 200,
    ) -> None:
        self.llm = llm
        self.chunk_size = chunk_size
        self.analysis_max_tokens = analysis_max_tokens
        self.visualization_max_tokens = visualization_max_tokens
        self._log = get_logger("decomposer")

    async def decompose(self, task: SlideGenerationTask) -> List[SubTask]:
        """Return exactly four sub-tasks: title, key points, visualization, recommendations."""
        summary, suggestion = await asyncio.gather(
            self.summarize(task.raw_data),
            self.suggest_visualization(task.raw_data),
        )
        framework = summary.framework or choose_framework(summary)
        context = SlidePrompts.context_block(task, summary)
        excerpt = split_data(task.raw_data, self.chunk_size)[0]

        subtasks = [
            SubTask(
                type=SubTaskType.TITLE,
                prompt=SlidePrompts.title_prompt(task, summary, framework, context),
                priority=SUBTASK_PRIORITIES[SubTaskType.TITLE],
            ),
            SubTask(
                type=SubTaskType.KEY_POINTS,
                prompt=SlidePrompts.key_points_prompt(summary, excerpt, context),
                priority=SUBTASK_PRIORITIES[SubTaskType.KEY_POINTS],
            ),
            SubTask(
                type=SubTaskType.VISUALIZATION,
                prompt=SlidePrompts.visualization_prompt(suggestion, context),
                priority=SUBTASK_PRIORITIES[SubTaskType.VISUALIZATION],
            ),
            SubTask(
                type=SubTaskType.RECOMMENDATIONS,
                prompt=SlidePrompts.recommendations_prompt(summary, context),
                priority=SUBTASK_PRIORITIES[SubTaskType.RECOMMENDATIONS],
            ),
        ]
        self._log.info(
            "decompose.done",
            subtasks=[s.type.value for s in subtasks],
            framework=framework.type,
            has_overview=bool(summary.overview),
        )
        return subtasks

    async def summarize(self, raw_data: str) -> DataSummary:
        """Run the data analysis pass; an empty summary stands in on failure."""
        payload = await self._upstream_json(
            "analysis",
            SlidePrompts.analysis_system_prompt(),
            SlidePrompts.analysis_user_prompt(raw_data),
            temperature=0.3,
            max_tokens=self.analysis_max_tokens,
        )
        if payload is None:
            return DataSummary()
        try:
            return DataSummary.model_validate(payload)
        except ValidationError as exc:
            self._log.warning("upstream.analysis.invalid", errors=exc.error_count())
            payload.pop("framework", None)
            try:
                return DataSummary.model_validate(payload)
            except ValidationError:
                return DataSummary()

    async def suggest_visualization(self, raw_data: str) -> Dict[str, Any]:
        payload = await self._upstream_json(
            "visualization",
            SlidePrompts.visualization_system_prompt(),
            SlidePrompts.visualization_user_prompt(raw_data),
            temperature=0.3,
            max_tokens=self.visualization_max_tokens,
        )
        return payload or {}

    async def _upstream_json(
        self,
        name: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.llm.complete(
                system_prompt,
                user_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except ConfigurationError:
            raise
        except Exception as exc:
            self._log.warning(
                f"upstream.{name}.failed",
                error=str(exc),
                error_class=type(exc).__name__,
            )
            return None

        payload = parse_json_object(raw or "")
        if payload is None:
            self._log.warning(f"upstream.{name}.invalid_json", raw_preview=(raw or "")[:100])
        return payload
