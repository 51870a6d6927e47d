"""
FastAPI application entry point for the InsightDeck API.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insightdeck import __version__
from insightdeck.api.errors import setup_error_handlers
from insightdeck.api.v1 import v1_router
from insightdeck.application.task_queue import TaskQueue
from insightdeck.domain.exceptions import ConfigurationError
from insightdeck.infra.config.logging_config import get_logger, setup_logging
from insightdeck.infra.config.settings import Settings, get_settings
from insightdeck.infra.llm import build_llm_client
from insightdeck.infra.metrics import metrics_router
from insightdeck.infra.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format, service=settings.app_name)
    logger = get_logger("app")
    logger.info(
        "app.startup",
        app_name=settings.app_name,
        environment=settings.environment,
        llm_backend=settings.llm_backend,
    )

    app.state.task_queue = TaskQueue.from_settings(settings)
    try:
        app.state.llm_client = build_llm_client(settings)
    except ConfigurationError as exc:
        # Requests that need the backend will fail with a configuration error.
        app.state.llm_client = None
        logger.warning("llm.unconfigured", error=exc.message)

    yield

    await app.state.task_queue.shutdown()
    logger.info("app.shutdown", app_name=settings.app_name)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Consulting-style slide generation from raw data",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    setup_error_handlers(app)
    app.include_router(v1_router, prefix="/api")
    if settings.prometheus_metrics_enabled:
        app.include_router(metrics_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": __version__,
            "llmBackend": settings.llm_backend,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "insightdeck.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level="debug" if _settings.debug else "info",
    )
