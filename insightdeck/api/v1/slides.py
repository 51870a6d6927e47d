"""
Slide generation endpoint.
"""

import asyncio

from fastapi import APIRouter, Depends, Response

from insightdeck.api.dependencies import get_app_settings, get_slide_service
from insightdeck.api.schemas import ErrorEnvelope, SlideRequest
from insightdeck.application.slide_generation import SlideGenerationService
from insightdeck.domain.exceptions import GenerationTimeoutError
from insightdeck.domain.models import SlideResult
from insightdeck.infra.config.logging_config import get_logger
from insightdeck.infra.config.settings import Settings

router = APIRouter(tags=["slides"])
log = get_logger("api.slides")

_ERROR_RESPONSES = {
    code: {"model": ErrorEnvelope} for code in (400, 408, 413, 429, 500, 503)
}


@router.post(
    "/generate-slides",
    response_model=SlideResult,
    response_model_by_alias=True,
    responses=_ERROR_RESPONSES,
)
async def generate_slides(
    request: SlideRequest,
    response: Response,
    service: SlideGenerationService = Depends(get_slide_service),
    settings: Settings = Depends(get_app_settings),
) -> SlideResult:
    """
    Generate one consulting-style slide from raw data.

    Sub-task work started for this request keeps running on the shared queue
    after a timeout, so a retry of the same data can reuse it.
    """
    response.headers["Cache-Control"] = "no-store"
    log.info("slides.generate.request", data_length=len(request.raw_data))
    try:
        return await asyncio.wait_for(
            service.generate_slide(request.to_task()),
            timeout=settings.request_timeout_seconds,
        )
    except asyncio.TimeoutError:
        raise GenerationTimeoutError(settings.request_timeout_seconds) from None
