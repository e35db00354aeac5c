"""Per-request cancellation tokens.

A ``CancellationToken`` is handed to the backend together with the request
and is also used by the gateway to stop waiting on a backend that is slow
to notice it. ``cancel_after`` arms a timer that cancels the token and
always disarms it when the scope exits.
"""

import asyncio
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from gatex.errors import RequestCancelledError

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal shared by a request and its backend call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Request cancelled"
        self._timeout: float | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None, timeout: float | None = None) -> None:
        """Fire the token. Later calls are ignored."""
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._timeout = timeout
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def error(self) -> RequestCancelledError:
        return RequestCancelledError(self._reason, timeout=self._timeout)

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise self.error()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        On cancellation the pending work is cancelled and awaited, then
        ``RequestCancelledError`` is raised.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not work.done():
                work.cancel()
                await asyncio.wait({work})

        if work.cancelled():
            raise self.error()
        return work.result()


@contextmanager
def cancel_after(timeout: float) -> Iterator[CancellationToken]:
    """Yield a token that cancels itself after ``timeout`` seconds.

    Example:
        ```python
        with cancel_after(settings.timeout) as token:
            stream = await token.guard(backend.invoke(model, messages, {}, token))
        ```
    """
    token = CancellationToken()
    handle = asyncio.get_running_loop().call_later(
        timeout,
        token.cancel,
        f"Request cancelled: exceeded {timeout:g}s timeout",
        timeout,
    )
    try:
        yield token
    finally:
        handle.cancel()
