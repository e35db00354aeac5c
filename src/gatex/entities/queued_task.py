"""Request queue entities."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class QueuedTask:
    """A unit of work waiting for, or holding, a queue slot.

    The future is the resolve/reject continuation pair: it is settled
    exactly once, on success or on terminal failure.

    Attributes:
        id: Opaque unique identifier
        work: Zero-argument coroutine factory executed on each attempt
        future: Settled with the result or terminal error
        max_retries: Retry bound for retryable failures
        priority: Higher values are dispatched sooner
        enqueued_at: Unix timestamp of the first enqueue
        retries: Attempts retried so far
    """

    id: str
    work: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    max_retries: int
    priority: int
    enqueued_at: float
    retries: int = 0


@dataclass
class QueueStats:
    """Queue counters."""

    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "pending": self.pending,
            "processing": self.processing,
            "completed": self.completed,
            "failed": self.failed,
            "retried": self.retried,
        }


