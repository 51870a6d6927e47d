"""
Response normalization for sub-task outputs.

Models answer the same question with different shapes (``points`` vs
``key_points``, a bare string vs a list of recommendations, objects instead
of strings). Each sub-task type has a schema that accepts the known variants
and emits one canonical dict; anything it cannot make sense of falls back to
the type's default.
"""

from typing import Any, Dict, List

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from insightdeck.domain.models import SubTaskType
from insightdeck.infra.config.logging_config import get_logger

log = get_logger("normalizer")

DEFAULT_TITLE = "Analysis Results"
DEFAULT_VISUAL_TYPE = "Bar Chart"

FALLBACKS: Dict[SubTaskType, Dict[str, Any]] = {
    SubTaskType.TITLE: {"title": DEFAULT_TITLE},
    SubTaskType.KEY_POINTS: {"points": ["Data analysis in progress"]},
    SubTaskType.RECOMMENDATIONS: {"recommendations": ["Analysis pending"]},
    SubTaskType.VISUALIZATION: {"type": DEFAULT_VISUAL_TYPE, "keyElements": []},
    SubTaskType.SUMMARY: {"overview": "Analysis pending", "keyPoints": []},
}

_ITEM_TEXT_KEYS = ("description", "text", "recommendation", "point", "title")


def fallback_for(subtask_type: SubTaskType) -> Dict[str, Any]:
    """Return a fresh copy of the fallback payload for a sub-task type."""
    return {
        key: list(value) if isinstance(value, list) else value
        for key, value in FALLBACKS[subtask_type].items()
    }


def _as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    items: List[str] = []
    for entry in value:
        if isinstance(entry, dict):
            entry = next(
                (entry[key] for key in _ITEM_TEXT_KEYS if entry.get(key)), None
            )
        if entry is None:
            continue
        text = str(entry).strip()
        if text:
            items.append(text)
    return items


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TitleContent(_Lenient):
    title: str = Field(
        DEFAULT_TITLE, validation_alias=AliasChoices("title", "actionTitle", "headline")
    )

    @field_validator("title", mode="before")
    @classmethod
    def _non_empty(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        return text or DEFAULT_TITLE


class KeyPointsContent(_Lenient):
    points: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("points", "key_points", "keyPoints", "insights"),
        validate_default=True,
    )

    @field_validator("points", mode="before")
    @classmethod
    def _text_items(cls, value: Any) -> List[str]:
        return _as_text_list(value) or ["No key points available"]


class VisualizationContent(_Lenient):
    type: str = Field(
        DEFAULT_VISUAL_TYPE,
        validation_alias=AliasChoices("type", "visualType", "chart_type", "chartType"),
    )
    key_elements: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices(
            "keyElements", "key_elements", "highlights", "dataHighlights"
        ),
        serialization_alias="keyElements",
    )

    @field_validator("type", mode="before")
    @classmethod
    def _non_empty(cls, value: Any) -> str:
        text = str(value).strip() if value is not None else ""
        return text or DEFAULT_VISUAL_TYPE

    @field_validator("key_elements", mode="before")
    @classmethod
    def _text_items(cls, value: Any) -> List[str]:
        return _as_text_list(value)


class RecommendationsContent(_Lenient):
    recommendations: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("recommendations", "recommendation", "actions"),
    )

    @field_validator("recommendations", mode="before")
    @classmethod
    def _text_items(cls, value: Any) -> List[str]:
        return _as_text_list(value)


class SummaryContent(_Lenient):
    overview: str = ""
    key_points: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("keyPoints", "key_points", "points"),
        serialization_alias="keyPoints",
    )

    @field_validator("overview", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("key_points", mode="before")
    @classmethod
    def _text_items(cls, value: Any) -> List[str]:
        return _as_text_list(value)


SCHEMAS = {
    SubTaskType.TITLE: TitleContent,
    SubTaskType.KEY_POINTS: KeyPointsContent,
    SubTaskType.VISUALIZATION: VisualizationContent,
    SubTaskType.RECOMMENDATIONS: RecommendationsContent,
    SubTaskType.SUMMARY: SummaryContent,
}


def normalize(subtask_type: Any, raw: Any) -> Any:
    """Reconcile a raw sub-task payload into the canonical shape for its type.

    Never raises. Unknown types are returned unchanged.
    """
    try:
        kind = SubTaskType(subtask_type)
    except ValueError:
        return raw

    if not isinstance(raw, dict):
        log.warning("normalize.not_object", type=kind.value, got=type(raw).__name__)
        return fallback_for(kind)

    try:
        parsed = SCHEMAS[kind].model_validate(raw)
    except ValidationError as exc:
        log.warning("normalize.invalid", type=kind.value, errors=exc.error_count())
        return fallback_for(kind)
    return parsed.model_dump(by_alias=True)
