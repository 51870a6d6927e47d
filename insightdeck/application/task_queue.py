"""
In-process priority task queue.

Runs submitted coroutine factories with a fixed concurrency ceiling, in
descending priority order, retrying transient failures with exponential
backoff and caching successful results for a short TTL keyed by task id.

All bookkeeping happens on the event loop between suspension points, so no
locking is needed; one queue instance is the unit of sharing.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from insightdeck.domain.exceptions import InsightDeckError, RetryExhaustedError
from insightdeck.infra.config.logging_config import get_logger
from insightdeck.infra.metrics import (
    QUEUE_ACTIVE,
    QUEUE_CACHE_HITS,
    QUEUE_DEDUPED,
    QUEUE_ENQUEUED,
    QUEUE_FAILURES,
    QUEUE_PENDING,
    QUEUE_RETRIES,
)

T = TypeVar("T")
TaskFactory = Callable[[], Awaitable[T]]

# Vendor error codes that mean "stop asking", never worth a retry.
NON_RETRYABLE_CODES = frozenset({"insufficient_quota", "rate_limit_exceeded"})


class FailureKind(str, Enum):
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


def classify_failure(exc: BaseException) -> FailureKind:
    """Decide whether a failed task may be retried.

    Application errors declare it themselves; anything else is retried unless
    it carries a quota/rate-limit code or a 429 status.
    """
    if isinstance(exc, InsightDeckError):
        return FailureKind.RETRYABLE if exc.retryable else FailureKind.TERMINAL
    if getattr(exc, "code", None) in NON_RETRYABLE_CODES:
        return FailureKind.TERMINAL
    if getattr(exc, "status_code", None) == 429:
        return FailureKind.TERMINAL
    return FailureKind.RETRYABLE


def backoff_delay(retry_count: int, base: float, cap: float) -> float:
    return min(base * (2**retry_count), cap)


@dataclass(eq=False)
class QueueItem(Generic[T]):
    id: str
    task: TaskFactory
    priority: int
    timestamp: float
    future: "asyncio.Future[T]"
    retry_count: int = 0
    max_retries: int = 3


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float


@dataclass
class QueueStats:
    pending: int
    active: int
    cached: int
    in_flight: int
    max_concurrent: int


class TaskQueue(Generic[T]):
    """Bounded-concurrency priority queue with retry and a TTL result cache."""

    def __init__(
        self,
        max_concurrent: int = 3,
        max_retries: int = 3,
        cache_ttl: float = 300.0,
        base_backoff: float = 1.0,
        max_backoff: float = 10.0,
        dedupe_in_flight: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.max_retries = max_retries
        self.cache_ttl = cache_ttl
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff
        self.dedupe_in_flight = dedupe_in_flight
        self._clock = clock

        self._pending: List[Tuple[int, int, QueueItem[T]]] = []
        self._sequence = itertools.count()
        self._active = 0
        self._cache: Dict[str, CacheEntry[T]] = {}
        self._in_flight: Dict[str, "asyncio.Future[T]"] = {}
        self._runners: Set["asyncio.Task[None]"] = set()
        self._retry_timers: Dict[QueueItem[T], asyncio.TimerHandle] = {}
        self._dispatch_scheduled = False
        self._log = get_logger("queue")

    @classmethod
    def from_settings(cls, settings: Any) -> "TaskQueue[T]":
        return cls(
            max_concurrent=settings.queue_max_concurrent,
            max_retries=settings.queue_max_retries,
            cache_ttl=settings.queue_cache_ttl,
            base_backoff=settings.queue_base_backoff,
            max_backoff=settings.queue_max_backoff,
            dedupe_in_flight=settings.queue_dedupe_in_flight,
        )

    async def enqueue(self, item_id: str, task: TaskFactory, priority: int = 1) -> T:
        """Run ``task`` through the queue and return its result.

        A valid cache entry for ``item_id`` is returned without running the
        task. When in-flight de-duplication is on, callers enqueueing an id
        that is already queued or running share that execution.
        """
        entry = self._cache.get(item_id)
        if entry is not None and self._is_fresh(entry):
            QUEUE_CACHE_HITS.inc()
            self._log.debug("queue.cache.hit", item_id=item_id)
            return entry.data

        if self.dedupe_in_flight and item_id in self._in_flight:
            QUEUE_DEDUPED.inc()
            self._log.debug("queue.dedupe.join", item_id=item_id)
            return await asyncio.shield(self._in_flight[item_id])

        future: "asyncio.Future[T]" = asyncio.get_running_loop().create_future()
        item = QueueItem(
            id=item_id,
            task=task,
            priority=priority,
            timestamp=self._clock(),
            future=future,
            max_retries=self.max_retries,
        )
        if self.dedupe_in_flight:
            self._in_flight[item_id] = future

        self._push(item)
        QUEUE_ENQUEUED.inc()
        self._log.debug("queue.enqueued", item_id=item_id, priority=priority)
        self._schedule_dispatch()
        return await asyncio.shield(future)

    def sweep_expired(self) -> int:
        """Delete stale cache entries and return how many were removed."""
        now = self._clock()
        stale = [
            key
            for key, entry in self._cache.items()
            if now - entry.timestamp >= self.cache_ttl
        ]
        for key in stale:
            del self._cache[key]
        if stale:
            self._log.info("queue.cache.swept", removed=len(stale))
        return len(stale)

    def clear_cache(self) -> None:
        self._cache.clear()

    def stats(self) -> QueueStats:
        return QueueStats(
            pending=len(self._pending),
            active=self._active,
            cached=len(self._cache),
            in_flight=len(self._in_flight),
            max_concurrent=self.max_concurrent,
        )

    async def shutdown(self) -> None:
        """Cancel scheduled retries and running tasks, failing their callers."""
        for item, handle in self._retry_timers.items():
            handle.cancel()
            if not item.future.done():
                item.future.cancel()
        self._retry_timers.clear()

        while self._pending:
            _, _, item = heapq.heappop(self._pending)
            if not item.future.done():
                item.future.cancel()

        runners = list(self._runners)
        for runner in runners:
            runner.cancel()
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

        for future in self._in_flight.values():
            if not future.done():
                future.cancel()
        self._in_flight.clear()
        self._update_gauges()
        self._log.info("queue.shutdown", cancelled=len(runners))

    def _is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.timestamp < self.cache_ttl

    def _push(self, item: QueueItem[T]) -> None:
        heapq.heappush(self._pending, (-item.priority, next(self._sequence), item))
        self._update_gauges()

    def _schedule_dispatch(self) -> None:
        # Deferred to the next loop iteration so items enqueued in the same
        # tick are ordered by priority before any of them starts.
        if self._dispatch_scheduled:
            return
        self._dispatch_scheduled = True
        asyncio.get_running_loop().call_soon(self._dispatch)

    def _dispatch(self) -> None:
        self._dispatch_scheduled = False
        while self._pending and self._active < self.max_concurrent:
            _, _, item = heapq.heappop(self._pending)
            if item.future.done():
                continue
            self._active += 1
            runner = asyncio.get_running_loop().create_task(
                self._run(item), name=f"queue:{item.id}"
            )
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)
        self._update_gauges()

    async def _run(self, item: QueueItem[T]) -> None:
        try:
            result = await item.task()
        except asyncio.CancelledError:
            self._settle(item, cancelled=True)
            raise
        except Exception as exc:
            self._handle_failure(item, exc)
        else:
            self._cache[item.id] = CacheEntry(data=result, timestamp=self._clock())
            self._settle(item, result=result)
        finally:
            self._active -= 1
            self._schedule_dispatch()

    def _handle_failure(self, item: QueueItem[T], exc: Exception) -> None:
        kind = classify_failure(exc)
        if kind is FailureKind.TERMINAL:
            QUEUE_FAILURES.labels(reason="terminal").inc()
            self._log.warning(
                "queue.task.terminal",
                item_id=item.id,
                error=str(exc),
                error_class=type(exc).__name__,
            )
            self._settle(item, error=exc)
            return

        if item.retry_count < item.max_retries:
            item.retry_count += 1
            delay = backoff_delay(item.retry_count, self.base_backoff, self.max_backoff)
            QUEUE_RETRIES.inc()
            self._log.info(
                "queue.retry.scheduled",
                item_id=item.id,
                retry_count=item.retry_count,
                delay_seconds=delay,
                error=str(exc),
            )
            loop = asyncio.get_running_loop()
            self._retry_timers[item] = loop.call_later(delay, self._requeue, item)
            return

        QUEUE_FAILURES.labels(reason="retries_exhausted").inc()
        self._log.error(
            "queue.retry.exhausted",
            item_id=item.id,
            attempts=item.retry_count + 1,
            error=str(exc),
        )
        error = RetryExhaustedError(item.id, item.retry_count + 1, exc)
        error.__cause__ = exc
        self._settle(item, error=error)

    def _requeue(self, item: QueueItem[T]) -> None:
        self._retry_timers.pop(item, None)
        if item.future.done():
            return
        self._push(item)
        self._schedule_dispatch()

    def _settle(
        self,
        item: QueueItem[T],
        result: Optional[T] = None,
        error: Optional[BaseException] = None,
        cancelled: bool = False,
    ) -> None:
        if self._in_flight.get(item.id) is item.future:
            del self._in_flight[item.id]
        if item.future.done():
            return
        if cancelled:
            item.future.cancel()
        elif error is not None:
            item.future.set_exception(error)
        else:
            item.future.set_result(result)

    def _update_gauges(self) -> None:
        QUEUE_ACTIVE.set(self._active)
        QUEUE_PENDING.set(len(self._pending))
