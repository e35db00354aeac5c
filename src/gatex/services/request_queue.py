"""Request queue with bounded concurrency and smart retry.

Serializes an unbounded stream of async tasks into at most
``max_concurrent`` concurrent executions:
  - Priority ordering (higher first, FIFO within a priority)
  - Failure classification into retryable and non-retryable errors
  - Exponential backoff (1s, 2s, 4s, ...) for retryable failures
  - A retry lane that is serviced ahead of fresh arrivals
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from gatex.entities import QueuedTask, QueueStats
from gatex.errors import QueueClearedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Checked first: any match makes the failure terminal.
NON_RETRYABLE_PATTERNS = (
    "cancelled",
    "invalid",
    "unauthorized",
    "401",
    "403",
    "404",
)

RETRYABLE_PATTERNS = (
    "timeout",
    "rate limit",
    "too many requests",
    "429",
    "500",
    "502",
    "503",
    "504",
    "network",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "socket hang up",
)


def is_retryable(error: BaseException) -> bool:
    """Classify a failure by its type name and message, case-insensitively.

    Args:
        error: The exception raised by a task

    Returns:
        True if the failure matches a retryable pattern and no
        non-retryable pattern
    """
    description = f"{type(error).__name__}: {error}".lower()

    if any(pattern in description for pattern in NON_RETRYABLE_PATTERNS):
        return False

    return any(pattern in description for pattern in RETRYABLE_PATTERNS)


class RequestQueue:
    """Bounded-concurrency task queue.

    Example:
        ```python
        queue = RequestQueue(max_concurrent=5)

        result = await queue.enqueue(lambda: call_backend(...), priority=1)
        print(queue.get_stats())
        ```
    """

    def __init__(
        self,
        max_concurrent: int = 3,
        backoff_base: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the queue.

        Args:
            max_concurrent: Maximum number of tasks executing at once.
            backoff_base: Delay before the first retry in seconds; doubles per retry.
            sleep: Awaitable delay function used for backoff.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._max_concurrent = max_concurrent
        self._backoff_base = backoff_base
        self._sleep = sleep
        self._pending: list[QueuedTask] = []
        self._retry_lane: deque[QueuedTask] = deque()
        self._processing: dict[str, QueuedTask] = {}
        self._running: set[asyncio.Task] = set()
        self._stats = QueueStats()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def set_max_concurrent(self, max_concurrent: int) -> None:
        """Change the concurrency limit. Raising it dispatches waiting tasks."""
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._process_queue()

    async def enqueue(
        self,
        work: Callable[[], Awaitable[T]],
        priority: int = 0,
        max_retries: int = 3,
    ) -> T:
        """Submit a task and wait for its result.

        Args:
            work: Zero-argument callable returning an awaitable; called once per attempt
            priority: Higher values run sooner
            max_retries: Maximum number of retries for retryable failures

        Returns:
            The task's result

        Raises:
            Exception: The task's terminal error, or QueueClearedError
        """
        future = asyncio.get_running_loop().create_future()
        task = QueuedTask(
            id=f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            work=work,
            future=future,
            max_retries=max_retries,
            priority=priority,
            enqueued_at=time.time(),
        )

        # First position whose priority is strictly lower keeps equal priorities FIFO
        index = next(
            (i for i, queued in enumerate(self._pending) if queued.priority < priority),
            len(self._pending),
        )
        self._pending.insert(index, task)
        self._stats.pending += 1

        self._process_queue()
        return await future

    def _next_task(self) -> QueuedTask | None:
        if self._retry_lane:
            return self._retry_lane.popleft()
        if self._pending:
            return self._pending.pop(0)
        return None

    def _process_queue(self) -> None:
        while len(self._processing) < self._max_concurrent:
            task = self._next_task()
            if task is None:
                break

            self._stats.pending -= 1
            if task.future.done():
                # Caller stopped waiting before the task was dispatched
                continue

            self._stats.processing += 1
            self._processing[task.id] = task

            runner = asyncio.create_task(self._execute(task))
            self._running.add(runner)
            runner.add_done_callback(self._running.discard)

    async def _execute(self, task: QueuedTask) -> None:
        try:
            result = await task.work()
        except asyncio.CancelledError:
            if not task.future.done():
                task.future.cancel()
            raise
        except Exception as e:
            if is_retryable(e) and task.retries < task.max_retries:
                task.retries += 1
                self._stats.retried += 1

                delay = self._backoff_base * 2 ** (task.retries - 1)
                logger.info(
                    "Retrying request %s (attempt %d/%d) after %.1fs: %s",
                    task.id,
                    task.retries,
                    task.max_retries,
                    delay,
                    e,
                )
                await self._sleep(delay)

                self._retry_lane.appendleft(task)
                self._stats.pending += 1
            else:
                self._stats.failed += 1
                logger.warning("Request %s failed after %d retries: %s", task.id, task.retries, e)
                if not task.future.done():
                    task.future.set_exception(e)
        else:
            self._stats.completed += 1
            if not task.future.done():
                task.future.set_result(result)
        finally:
            self._stats.processing -= 1
            self._processing.pop(task.id, None)
            self._process_queue()

    def get_stats(self) -> QueueStats:
        """Return a copy of the queue counters."""
        return QueueStats(**self._stats.to_dict())

    def get_queue_length(self) -> int:
        """Number of tasks waiting for a slot, including retries."""
        return len(self._retry_lane) + len(self._pending)

    def get_processing_count(self) -> int:
        """Number of tasks currently holding a slot."""
        return len(self._processing)

    def clear(self) -> int:
        """Reject every waiting task with ``QueueClearedError``.

        In-flight tasks are left alone.

        Returns:
            Number of tasks rejected
        """
        waiting = [*self._retry_lane, *self._pending]
        for task in waiting:
            if not task.future.done():
                task.future.set_exception(QueueClearedError())

        self._retry_lane.clear()
        self._pending.clear()
        self._stats.pending = 0
        return len(waiting)
