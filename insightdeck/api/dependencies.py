"""
API dependencies for dependency injection.

Long-lived collaborators (settings, task queue, LLM client) hang off
``app.state``; tests replace them with ``app.dependency_overrides``.
"""

from fastapi import Depends, Request

from insightdeck.application.ports import LLMServicePort
from insightdeck.application.slide_generation import SlideGenerationService
from insightdeck.application.task_queue import TaskQueue
from insightdeck.infra.config.settings import Settings, get_settings
from insightdeck.infra.llm import build_llm_client


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_task_queue(request: Request) -> TaskQueue:
    return request.app.state.task_queue


def get_llm_client(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> LLMServicePort:
    """Build the client on first use; a missing credential fails the request."""
    client = getattr(request.app.state, "llm_client", None)
    if client is None:
        client = build_llm_client(settings)
        request.app.state.llm_client = client
    return client


def get_slide_service(
    llm: LLMServicePort = Depends(get_llm_client),
    queue: TaskQueue = Depends(get_task_queue),
    settings: Settings = Depends(get_app_settings),
) -> SlideGenerationService:
    return SlideGenerationService.from_settings(llm, queue, settings)
