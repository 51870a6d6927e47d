"""
Domain value objects for slide generation.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SubTaskType(str, Enum):
    """Kinds of generation work a slide request is split into."""

    TITLE = "title"
    KEY_POINTS = "keyPoints"
    VISUALIZATION = "visualization"
    SUMMARY = "summary"
    RECOMMENDATIONS = "recommendations"


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SlideGenerationTask(CamelModel):
    """User input for one slide: raw data plus optional framing."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    raw_data: str
    title: Optional[str] = None
    so_what: Optional[str] = None
    source: Optional[str] = None
    audience: Optional[str] = None
    style: Optional[str] = None
    focus_area: Optional[str] = None
    data_context: Optional[str] = None


class SubTask(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SubTaskType
    prompt: str
    priority: int


class SubTaskResult(BaseModel):
    """Output of one sub-task; ``content`` is always a JSON document."""

    model_config = ConfigDict(frozen=True)

    type: SubTaskType
    content: str


class ConsultingFramework(BaseModel):
    type: Literal["mece", "pyramid", "hypothesis", "driver-tree"] = "pyramid"
    elements: List[str] = Field(default_factory=list)


class DataSummary(CamelModel):
    """Result of the upstream data analysis pass."""

    overview: str = ""
    key_metrics: List[str] = Field(default_factory=list)
    trends: List[str] = Field(default_factory=list)
    framework: Optional[ConsultingFramework] = None


class SlideResult(CamelModel):
    """The normalized slide returned to callers."""

    title: str
    subtitle: str
    visual_type: str
    visual_highlights: List[str] = Field(default_factory=list)
    key_points: List[str] = Field(default_factory=list, max_length=3)
    recommendations: List[str] = Field(default_factory=list, max_length=2)
    source: str
    audience: str
    style: str
