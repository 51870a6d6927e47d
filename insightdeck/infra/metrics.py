from fastapi import APIRouter, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Task queue
QUEUE_ENQUEUED = Counter("insightdeck_queue_enqueued_total", "Tasks enqueued")
QUEUE_CACHE_HITS = Counter(
    "insightdeck_queue_cache_hits_total", "Enqueue calls served from the cache"
)
QUEUE_DEDUPED = Counter(
    "insightdeck_queue_deduplicated_total",
    "Enqueue calls joined to an in-flight task",
)
QUEUE_RETRIES = Counter("insightdeck_queue_retries_total", "Task retries scheduled")
QUEUE_FAILURES = Counter(
    "insightdeck_queue_failures_total", "Tasks rejected permanently", ["reason"]
)
QUEUE_ACTIVE = Gauge("insightdeck_queue_active_tasks", "Tasks currently running")
QUEUE_PENDING = Gauge("insightdeck_queue_pending_tasks", "Tasks waiting to run")

# Slide generation
SLIDES_STARTED = Counter("insightdeck_slides_started_total", "Slide requests started")
SLIDES_COMPLETED = Counter(
    "insightdeck_slides_completed_total", "Slide requests completed"
)
SLIDES_FAILED = Counter(
    "insightdeck_slides_failed_total", "Slide requests failed", ["error_type"]
)
SUBTASK_FALLBACKS = Counter(
    "insightdeck_subtask_fallbacks_total",
    "Sub-task results replaced by a fallback",
    ["type", "reason"],
)
STEP_DURATION_SECONDS = Histogram(
    "insightdeck_step_duration_seconds", "Generation step duration seconds", ["step"]
)

# HTTP
HTTP_REQUESTS = Counter(
    "insightdeck_http_requests_total",
    "HTTP requests by route, status and envelope error type",
    ["method", "route", "status", "error_type"],
)
HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "insightdeck_http_request_duration_seconds",
    "HTTP request duration seconds",
    ["method", "route"],
)


metrics_router = APIRouter()


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def observe_step(step: str, seconds: float) -> None:
    STEP_DURATION_SECONDS.labels(step=step).observe(max(0.0, seconds))
