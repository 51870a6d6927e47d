"""
Per-request correlation id and outcome recording.
"""

import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from insightdeck.infra.config.logging_config import (
    bind_context,
    clear_context,
    get_logger,
)
from insightdeck.infra.metrics import HTTP_REQUEST_DURATION_SECONDS, HTTP_REQUESTS

REQUEST_ID_HEADER = "X-Request-ID"

log = get_logger("http")


def route_label(request: Request) -> str:
    """Route template for metric labels; unmatched paths share one label."""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id into the log context and records how the request ended.

    The id is taken from ``X-Request-ID`` when the caller sends one and is
    echoed on the response. Status, envelope error type (set on
    ``request.state`` by the API error handlers) and duration go to one log
    event and to Prometheus.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:  # type: ignore[override]
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        bind_context(request_id=request_id, method=request.method, path=request.url.path)
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            elapsed = time.perf_counter() - started
            route = route_label(request)
            error_type = getattr(request.state, "error_type", None)
            if error_type is None and status_code >= 500:
                error_type = "internal"
            HTTP_REQUESTS.labels(
                method=request.method,
                route=route,
                status=str(status_code),
                error_type=error_type or "none",
            ).inc()
            HTTP_REQUEST_DURATION_SECONDS.labels(method=request.method, route=route).observe(elapsed)
            (log.info if status_code < 400 else log.warning)(
                "request.completed",
                status_code=status_code,
                error_type=error_type,
                duration_ms=round(elapsed * 1000, 1),
            )
            clear_context()
