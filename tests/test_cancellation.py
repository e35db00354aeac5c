"""
Tests for cancellation tokens and error helpers.
"""

import asyncio

import pytest

from gatex.errors import RequestCancelledError, is_cancellation
from gatex.utils import CancellationToken, cancel_after


class TestCancellationToken:
    def test_cancel_is_one_shot(self):
        token = CancellationToken()

        token.cancel("first reason", timeout=1.0)
        token.cancel("second reason")

        assert token.is_cancelled
        assert token.reason == "first reason"
        assert token.error().timeout == 1.0

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel()
        with pytest.raises(RequestCancelledError, match="Request cancelled"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_guard_returns_result(self):
        token = CancellationToken()

        async def work():
            return 42

        assert await token.guard(work()) == 42

    @pytest.mark.asyncio
    async def test_guard_cancels_pending_work(self):
        token = CancellationToken()
        finished = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            finally:
                finished.set()

        asyncio.get_running_loop().call_later(0.01, token.cancel, "stop")

        with pytest.raises(RequestCancelledError, match="stop"):
            await token.guard(slow())
        assert finished.is_set()

    @pytest.mark.asyncio
    async def test_guard_propagates_work_error(self):
        token = CancellationToken()

        async def broken():
            raise ValueError("bad")

        with pytest.raises(ValueError, match="bad"):
            await token.guard(broken())


class TestCancelAfter:
    @pytest.mark.asyncio
    async def test_fires_after_timeout(self):
        with cancel_after(0.01) as token:
            await asyncio.sleep(0.05)
            assert token.is_cancelled
            assert token.reason == "Request cancelled: exceeded 0.01s timeout"

    @pytest.mark.asyncio
    async def test_disarmed_on_exit(self):
        with cancel_after(0.01) as token:
            pass
        await asyncio.sleep(0.05)

        assert not token.is_cancelled


class TestIsCancellation:
    def test_detects_cancellation_types_and_messages(self):
        assert is_cancellation(RequestCancelledError())
        assert is_cancellation(RuntimeError("Operation was Cancelled by caller"))
        assert not is_cancellation(RuntimeError("boom"))
