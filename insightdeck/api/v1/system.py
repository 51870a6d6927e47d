"""
Operational endpoints for the shared task queue.
"""

from fastapi import APIRouter, Depends

from insightdeck.api.dependencies import get_task_queue
from insightdeck.api.schemas import QueueStatsResponse, SweepResponse
from insightdeck.application.task_queue import TaskQueue
from insightdeck.infra.config.logging_config import get_logger

router = APIRouter(prefix="/system", tags=["system"])
log = get_logger("api.system")


@router.get("/queue", response_model=QueueStatsResponse, response_model_by_alias=True)
async def queue_stats(queue: TaskQueue = Depends(get_task_queue)) -> QueueStatsResponse:
    stats = queue.stats()
    return QueueStatsResponse(
        pending=stats.pending,
        active=stats.active,
        cached=stats.cached,
        in_flight=stats.in_flight,
        max_concurrent=stats.max_concurrent,
    )


@router.post("/queue/sweep", response_model=SweepResponse, response_model_by_alias=True)
async def sweep_queue_cache(queue: TaskQueue = Depends(get_task_queue)) -> SweepResponse:
    removed = queue.sweep_expired()
    log.info("queue.sweep", removed=removed)
    return SweepResponse(removed=removed, cached=queue.stats().cached)
