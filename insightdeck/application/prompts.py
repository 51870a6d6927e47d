"""
Prompt templates for slide generation.

Every prompt asks for a bare JSON object; the executor still cleans replies
because models do not always comply.
"""

import json
from typing import Any, Dict, Optional

from insightdeck.domain.models import ConsultingFramework, DataSummary, SlideGenerationTask

RAW_JSON_RULE = (
    "Respond with raw JSON only. Do not use markdown formatting, code blocks, "
    "or any other formatting. The response must be a valid JSON object that "
    "can be parsed directly."
)


class SlidePrompts:
    """Centralized prompt templates for slide generation."""

    @staticmethod
    def subtask_system_prompt() -> str:
        return (
            "You are an expert management consultant creating high-impact "
            f"presentation slides. {RAW_JSON_RULE}"
        )

    @staticmethod
    def analysis_system_prompt() -> str:
        return f"You are an expert data analyst and management consultant. {RAW_JSON_RULE}"

    @staticmethod
    def analysis_user_prompt(raw_data: str) -> str:
        return f"""Analyze this data and respond with a JSON object in this exact format (no markdown, no code blocks):
{{
  "overview": "brief overview text",
  "keyMetrics": ["metric1", "metric2"],
  "trends": ["trend1", "trend2"],
  "framework": {{
    "type": "pyramid|mece|driver-tree|hypothesis",
    "elements": ["element1", "element2"]
  }}
}}

Data: {raw_data}"""

    @staticmethod
    def visualization_system_prompt() -> str:
        return f"You are an expert in data visualization. {RAW_JSON_RULE}"

    @staticmethod
    def visualization_user_prompt(raw_data: str) -> str:
        return f"""Recommend a visualization by responding with a JSON object in this exact format (no markdown, no code blocks):
{{
  "type": "chart_type",
  "keyElements": ["element1", "element2"]
}}

Key principles: highlight what is important, avoid pie charts unless absolutely necessary, keep the chart self-explanatory.

Data: {raw_data}"""

    @staticmethod
    def context_block(task: SlideGenerationTask, summary: DataSummary) -> str:
        lines = [
            "Context:",
            f"- Audience: {task.audience or 'General business audience'}",
            f"- Style: {task.style or 'Professional'}",
            f"- Focus Area: {task.focus_area or 'General analysis'}",
            f"- Data Context: {task.data_context or 'Business data'}",
            f"- Key Metrics: {', '.join(summary.key_metrics)}",
            f"- Trends: {', '.join(summary.trends)}",
        ]
        if task.so_what:
            lines.append(f"- So What: {task.so_what}")
        return "\n".join(lines)

    @staticmethod
    def title_prompt(
        task: SlideGenerationTask,
        summary: DataSummary,
        framework: ConsultingFramework,
        context: str,
    ) -> str:
        payload = _dumps(
            {
                "overview": summary.overview,
                "metrics": summary.key_metrics,
                "framework": framework.model_dump(),
            }
        )
        hint = f'\nThe author\'s working title is "{task.title}".' if task.title else ""
        return f"""Create a compelling, action-oriented slide title that starts with the key quantitative insight and ends with its business implication.{hint}
{context}

Respond with raw JSON, no markdown, in the format {{"title": "Your Title Here"}}.
Data: {payload}"""

    @staticmethod
    def key_points_prompt(summary: DataSummary, data_excerpt: str, context: str) -> str:
        payload = _dumps({"metrics": summary.key_metrics, "trends": summary.trends})
        return f"""Generate 3 key points with specific numbers and actionable insights.
{context}

Respond with raw JSON, no markdown, in the format {{"points": ["Point 1", "Point 2", "Point 3"]}}.
Data: {payload}
Data excerpt:
{data_excerpt}"""

    @staticmethod
    def visualization_prompt(suggestion: Dict[str, Any], context: str) -> str:
        return f"""Finalize the visualization for this slide, keeping the suggested chart unless it clearly misrepresents the data.
{context}

Respond with raw JSON, no markdown, in the format {{"type": "Chart Type", "keyElements": ["Element 1", "Element 2"]}}.
Suggested visualization: {_dumps(suggestion)}"""

    @staticmethod
    def recommendations_prompt(summary: DataSummary, context: str) -> str:
        return f"""Provide 2 strategic recommendations based on this overview.
{context}

Respond with raw JSON, no markdown, in the format {{"recommendations": ["Recommendation 1", "Recommendation 2"]}}.
Overview: {summary.overview}"""


def _dumps(value: Optional[Any]) -> str:
    return json.dumps(value, ensure_ascii=False)
