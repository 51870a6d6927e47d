"""
Request and response schemas for the HTTP API.

Wire format is camelCase; Python attributes stay snake_case.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from insightdeck.domain.models import CamelModel, SlideGenerationTask


class SlideRequest(CamelModel):
    """Body of ``POST /api/v1/generate-slides``."""

    # Empty is allowed here so the domain validator can word the error.
    raw_data: str = Field("", description="Tabular or free-form data to analyze")
    title: Optional[str] = None
    so_what: Optional[str] = Field(None, description="Key takeaway used as subtitle")
    source: Optional[str] = None
    audience: Optional[str] = None
    style: Optional[str] = None
    focus_area: Optional[str] = None
    data_context: Optional[str] = None

    def to_task(self) -> SlideGenerationTask:
        return SlideGenerationTask(**self.model_dump())


class ErrorEnvelope(CamelModel):
    """Slide-shaped error body so clients can render failures in place."""

    error: bool = True
    message: str
    error_type: str
    title: str = "Error Generating Slide"
    subtitle: str = ""
    key_points: List[str] = Field(default_factory=list)
    source: str = "System"


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"] = "user"
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)


class QueueStatsResponse(CamelModel):
    pending: int
    active: int
    cached: int
    in_flight: int
    max_concurrent: int


class SweepResponse(CamelModel):
    removed: int
    cached: int
