"""
API error handling and exception mapping.

Every failure, expected or not, leaves the API as an ``ErrorEnvelope`` whose
HTTP status comes from the domain error raised.
"""

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from insightdeck.api.schemas import ErrorEnvelope
from insightdeck.domain.exceptions import InsightDeckError
from insightdeck.infra.config.logging_config import get_logger

log = get_logger("api.errors")

_HINTS = {
    "validation": "Check that the request includes data to analyze",
    "payload_too_large": "Reduce the size of the data and try again",
    "quota_exceeded": "The AI provider quota is exhausted; try again later",
    "configuration": "The service is not configured for the selected AI provider",
    "timeout": "The request took too long; try again with less data",
    "upstream": "The AI provider failed to respond; please try again",
    "internal": "Please try again later",
}


def error_response(
    request: Request, status_code: int, message: str, error_type: str
) -> JSONResponse:
    request.state.error_type = error_type
    envelope = ErrorEnvelope(
        message=message,
        error_type=error_type,
        subtitle=message,
        key_points=[_HINTS.get(error_type, _HINTS["internal"])],
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(by_alias=True),
        headers={"Cache-Control": "no-store"},
    )


async def domain_error_handler(request: Request, exc: InsightDeckError) -> JSONResponse:
    log.warning(
        "api.domain_error",
        code=exc.code,
        error_type=exc.error_type,
        status=exc.status_code,
        error=exc.message,
    )
    return error_response(request, exc.status_code, exc.message, exc.error_type)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    formatted_errors = []
    for error in exc.errors():
        location = " -> ".join(str(loc) for loc in error["loc"])
        formatted_errors.append(f"{location}: {error['msg']}")
    message = "Invalid request: " + "; ".join(formatted_errors)
    log.warning("api.validation_error", error=message)
    return error_response(request, status.HTTP_400_BAD_REQUEST, message, "validation")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    log.warning("api.http_exception", status=exc.status_code, detail=str(exc.detail))
    error_type = "validation" if exc.status_code < 500 else "internal"
    return error_response(request, exc.status_code, str(exc.detail), error_type)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("api.unexpected_error", error_class=type(exc).__name__)
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        "internal",
    )


def setup_error_handlers(app) -> None:
    """Register the handlers on ``app``."""
    app.add_exception_handler(InsightDeckError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
