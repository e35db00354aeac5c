"""
Tests for the request queue: concurrency, priority and retry.
"""

import asyncio

import pytest

from gatex.errors import QueueClearedError, RequestCancelledError
from gatex.services import RequestQueue, is_retryable


class RecordingSleep:
    """Backoff stand-in that records delays without waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestIsRetryable:
    @pytest.mark.parametrize(
        "message",
        [
            "Request timeout",
            "429 Too Many Requests",
            "rate limit exceeded",
            "Server error '503 Service Unavailable'",
            "read ECONNRESET",
            "socket hang up",
            "[Errno 111] Connection refused",
        ],
    )
    def test_retryable_messages(self, message):
        assert is_retryable(RuntimeError(message))

    @pytest.mark.parametrize(
        "message",
        [
            "Unauthorized",
            "401 from upstream",
            "model not found (404)",
            "invalid request",
            "Request cancelled: exceeded 5s timeout",
        ],
    )
    def test_non_retryable_messages(self, message):
        assert not is_retryable(RuntimeError(message))

    def test_non_retryable_checked_first(self):
        assert not is_retryable(RuntimeError("unauthorized: 503 upstream"))

    def test_unclassified_is_not_retried(self):
        assert not is_retryable(RuntimeError("something odd"))

    def test_exception_type_name_counts(self):
        class ReadTimeout(Exception):
            pass

        assert is_retryable(ReadTimeout(""))

    def test_cancellation_error_is_terminal(self):
        assert not is_retryable(RequestCancelledError("Request cancelled"))


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_never_exceeds_max_concurrent(self):
        queue = RequestQueue(max_concurrent=2)
        running = 0
        peak = 0

        async def work(value):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return value

        results = await asyncio.gather(
            *(queue.enqueue(lambda v=i: work(v)) for i in range(8))
        )

        assert results == list(range(8))
        assert peak == 2
        stats = queue.get_stats()
        assert stats.completed == 8
        assert stats.processing == 0
        assert stats.pending == 0

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_tasks(self):
        queue = RequestQueue(max_concurrent=2)

        async def boom():
            raise ValueError("invalid input")

        async def ok():
            await asyncio.sleep(0.01)
            return "ok"

        results = await asyncio.gather(
            queue.enqueue(boom), queue.enqueue(ok), return_exceptions=True
        )

        assert isinstance(results[0], ValueError)
        assert results[1] == "ok"
        assert queue.get_stats().failed == 1
        assert queue.get_stats().completed == 1

    @pytest.mark.asyncio
    async def test_synchronous_raise_is_caught(self):
        queue = RequestQueue(max_concurrent=1)

        def not_a_coroutine():
            raise KeyError("invalid key")

        with pytest.raises(KeyError):
            await queue.enqueue(not_a_coroutine)
        assert queue.get_processing_count() == 0

    @pytest.mark.asyncio
    async def test_raising_limit_dispatches_waiting_tasks(self):
        queue = RequestQueue(max_concurrent=1)
        gate = asyncio.Event()

        async def blocked():
            await gate.wait()
            return "done"

        tasks = [asyncio.create_task(queue.enqueue(blocked)) for _ in range(3)]
        await asyncio.sleep(0)
        assert queue.get_processing_count() == 1
        assert queue.get_queue_length() == 2

        queue.set_max_concurrent(3)
        assert queue.get_processing_count() == 3

        gate.set()
        assert await asyncio.gather(*tasks) == ["done"] * 3


class TestPriority:
    @pytest.mark.asyncio
    async def test_higher_priority_dispatched_first(self):
        queue = RequestQueue(max_concurrent=1)
        gate = asyncio.Event()
        order = []

        async def blocker():
            await gate.wait()

        async def record(name):
            order.append(name)

        first = asyncio.create_task(queue.enqueue(blocker))
        await asyncio.sleep(0)

        tasks = [
            asyncio.create_task(queue.enqueue(lambda: record("low-1"), priority=0)),
            asyncio.create_task(queue.enqueue(lambda: record("low-2"), priority=0)),
            asyncio.create_task(queue.enqueue(lambda: record("mid"), priority=5)),
            asyncio.create_task(queue.enqueue(lambda: record("high"), priority=10)),
        ]
        await asyncio.sleep(0)
        assert queue.get_queue_length() == 4

        gate.set()
        await asyncio.gather(first, *tasks)

        assert order == ["high", "mid", "low-1", "low-2"]


class TestRetry:
    @pytest.mark.asyncio
    async def test_retryable_failure_retried_with_backoff(self):
        sleep = RecordingSleep()
        queue = RequestQueue(max_concurrent=1, sleep=sleep)
        attempts = 0

        async def always_rate_limited():
            nonlocal attempts
            attempts += 1
            raise RuntimeError(f"HTTP 429 (attempt {attempts})")

        with pytest.raises(RuntimeError, match="attempt 4"):
            await queue.enqueue(always_rate_limited, max_retries=3)

        assert attempts == 4
        assert sleep.delays == [1.0, 2.0, 4.0]
        stats = queue.get_stats()
        assert stats.retried == 3
        assert stats.failed == 1
        assert stats.processing == 0

    @pytest.mark.asyncio
    async def test_unauthorized_never_retried(self):
        sleep = RecordingSleep()
        queue = RequestQueue(sleep=sleep)
        attempts = 0

        async def unauthorized():
            nonlocal attempts
            attempts += 1
            raise RuntimeError("Unauthorized")

        with pytest.raises(RuntimeError):
            await queue.enqueue(unauthorized, max_retries=10)

        assert attempts == 1
        assert sleep.delays == []
        assert queue.get_stats().retried == 0

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self):
        queue = RequestQueue(sleep=RecordingSleep())
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise ConnectionError("connection reset by peer")
            return "ok"

        assert await queue.enqueue(flaky) == "ok"
        assert queue.get_stats().retried == 2
        assert queue.get_stats().completed == 1

    @pytest.mark.asyncio
    async def test_retry_serviced_before_fresh_arrivals(self):
        release_retry = asyncio.Event()

        async def controlled_sleep(delay):
            await release_retry.wait()

        queue = RequestQueue(max_concurrent=1, sleep=controlled_sleep)
        order = []
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            order.append(f"flaky-{attempts}")
            if attempts == 1:
                raise RuntimeError("503 Service Unavailable")

        async def fresh():
            order.append("fresh")

        retried = asyncio.create_task(queue.enqueue(flaky))
        await asyncio.sleep(0)
        arrival = asyncio.create_task(queue.enqueue(fresh, priority=10))
        await asyncio.sleep(0)

        release_retry.set()
        await asyncio.gather(retried, arrival)

        assert order == ["flaky-1", "flaky-2", "fresh"]


class TestClear:
    @pytest.mark.asyncio
    async def test_clear_rejects_pending_only(self):
        queue = RequestQueue(max_concurrent=1)
        gate = asyncio.Event()

        async def in_flight():
            await gate.wait()
            return "finished"

        running = asyncio.create_task(queue.enqueue(in_flight))
        waiting = [asyncio.create_task(queue.enqueue(in_flight)) for _ in range(2)]
        await asyncio.sleep(0)

        assert queue.clear() == 2
        assert queue.get_queue_length() == 0
        assert queue.get_stats().pending == 0

        for task in waiting:
            with pytest.raises(QueueClearedError, match="Queue cleared"):
                await task

        gate.set()
        assert await running == "finished"
