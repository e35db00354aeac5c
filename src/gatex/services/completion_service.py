"""Completion service.

Runs backend calls for both wire protocols:
  - Buffered completions go through the response cache and request queue
  - Streaming completions call the backend directly
Every backend call is scoped by a timeout-armed cancellation token.
"""

import logging
import time
from collections.abc import AsyncIterator
from typing import Any

from gatex.config import Settings
from gatex.entities import ChatMessage, CompletionResult, ModelInfo
from gatex.protocols import BackendInvoker
from gatex.services.request_queue import RequestQueue
from gatex.services.response_cache import ResponseCache
from gatex.utils.cancellation import CancellationToken, cancel_after

logger = logging.getLogger(__name__)

_END = object()


async def _next_chunk(stream: AsyncIterator[str]) -> Any:
    try:
        return await stream.__anext__()
    except StopAsyncIteration:
        return _END


class CompletionService:
    """Core orchestration of backend calls.

    Depends on the BackendInvoker protocol, not a concrete backend.

    Example:
        ```python
        service = CompletionService(
            backend=OllamaBackend.create(),
            queue=RequestQueue(max_concurrent=5),
            cache=ResponseCache(),
        )
        result = await service.complete(model, messages, {}, get_settings())
        ```
    """

    def __init__(
        self,
        backend: BackendInvoker,
        queue: RequestQueue,
        cache: ResponseCache,
    ) -> None:
        """Initialize the completion service.

        Args:
            backend: Model backend (required).
            queue: Queue bounding concurrent buffered calls (required).
            cache: Cache of buffered responses (required).
        """
        self._backend = backend
        self._queue = queue
        self._cache = cache

    @property
    def queue(self) -> RequestQueue:
        return self._queue

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    def apply_settings(self, settings: Settings) -> None:
        """Push request-time configuration into the shared queue and cache."""
        if self._queue.max_concurrent != settings.max_concurrent_requests:
            self._queue.set_max_concurrent(settings.max_concurrent_requests)
        self._cache.set_enabled(settings.cache_enabled)
        self._cache.max_age = settings.cache_max_age

    async def complete(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        settings: Settings,
        priority: int = 0,
    ) -> CompletionResult:
        """Run a buffered completion.

        Business logic:
        1. Look up the request fingerprint in the response cache
        2. On a miss, submit the backend call to the request queue
        3. Store the accumulated result in the cache

        Args:
            model: Resolved model
            messages: Normalized conversation
            options: Generation options
            settings: Configuration for this request
            priority: Queue priority (higher runs sooner)

        Returns:
            CompletionResult with the full text

        Raises:
            RequestCancelledError: If the call exceeded the timeout
            Exception: The backend's terminal error after retries
        """
        self.apply_settings(settings)

        key = self._cache.generate_key(model.id, messages, options)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s (%s)", model.id, key)
            return CompletionResult.from_cache_payload(cached)

        result = await self._queue.enqueue(
            lambda: self._collect(model, messages, options, settings.timeout),
            priority=priority,
            max_retries=settings.max_retries,
        )

        self._cache.set(key, result.to_cache_payload())
        return result

    async def stream(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        settings: Settings,
    ) -> AsyncIterator[str]:
        """Stream text chunks straight from the backend, bypassing queue and cache.

        Raises:
            RequestCancelledError: If the call exceeded the timeout
        """
        with cancel_after(settings.timeout) as token:
            async for chunk in self._iterate(model, messages, options, token):
                yield chunk

    async def _collect(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        timeout: float,
    ) -> CompletionResult:
        started = time.perf_counter()

        with cancel_after(timeout) as token:
            parts = [chunk async for chunk in self._iterate(model, messages, options, token)]

        return CompletionResult(
            content="".join(parts),
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )

    async def _iterate(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        token: CancellationToken,
    ) -> AsyncIterator[str]:
        stream = await token.guard(self._backend.invoke(model, messages, options, token))
        try:
            while True:
                chunk = await token.guard(_next_chunk(stream))
                if chunk is _END:
                    return
                yield chunk
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
