"""Shared request flow for the chat protocol handlers.

Both protocols follow the same steps: parse and validate the body,
resolve the model, normalize messages, then either run a buffered
completion or stream SSE frames. Subclasses supply the wire shapes.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ValidationError

from gatex.config import Settings
from gatex.entities import ChatMessage, CompletionResult, ModelInfo, RequestRecord
from gatex.errors import is_cancellation
from gatex.services import CompletionService, ModelService, TrafficStats
from gatex.utils.sse import SSE_HEADERS
from gatex.utils.tokens import estimate_message_tokens, estimate_tokens

logger = logging.getLogger(__name__)

GENERATION_OPTIONS = ("temperature", "max_tokens", "top_p")


class ErrorKind:
    """Protocol-neutral error categories, mapped to wire codes by each handler."""

    INVALID_JSON = "invalid_json"
    INVALID_REQUEST = "invalid_request"
    NOT_FOUND = "not_found"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    TIMEOUT = "timeout"
    BACKEND = "backend"


def build_model_options(request: BaseModel) -> dict[str, Any]:
    """Collect the generation options a request sets explicitly."""
    options = {}
    for name in GENERATION_OPTIONS:
        value = getattr(request, name, None)
        if value is not None:
            options[name] = value
    return options


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


class ChatHandler(ABC):
    """Base class for protocol handlers.

    Handlers convert between wire DTOs and service calls and own HTTP
    concerns: status codes, error shapes and SSE framing.
    """

    request_model: type[BaseModel]
    error_codes: dict[str, str]

    def __init__(
        self,
        completion_service: CompletionService,
        model_service: ModelService,
        traffic_stats: TrafficStats,
        settings_provider: Callable[[], Settings],
    ) -> None:
        """Initialize the handler.

        Args:
            completion_service: Runs backend calls (required).
            model_service: Resolves requested model ids (required).
            traffic_stats: Records request outcomes (required).
            settings_provider: Returns the configuration for each request.
        """
        self._completions = completion_service
        self._models = model_service
        self._stats = traffic_stats
        self._settings_provider = settings_provider

    # Wire shapes

    @abstractmethod
    def error_body(self, code: str, message: str) -> dict[str, Any]:
        """Build the protocol's error object."""

    @abstractmethod
    def convert_messages(self, request: Any) -> list[ChatMessage]:
        """Normalize the request's conversation for the backend."""

    @abstractmethod
    def new_response_id(self) -> str: ...

    @abstractmethod
    def build_response(
        self,
        request: Any,
        result: CompletionResult,
        response_id: str,
        input_tokens: int,
        output_tokens: int,
    ) -> BaseModel:
        """Wrap a buffered result in the protocol's success envelope."""

    @abstractmethod
    def stream_prologue(self, request: Any, response_id: str) -> Iterable[str]:
        """Frames written before the first backend chunk."""

    @abstractmethod
    def stream_delta(self, request: Any, response_id: str, chunk: str) -> str:
        """Frame for one backend text chunk."""

    @abstractmethod
    def stream_epilogue(self, request: Any, response_id: str, output_tokens: int) -> Iterable[str]:
        """Frames written after the backend stream ends."""

    @abstractmethod
    def stream_error(self, error: Exception, settings: Settings) -> str:
        """Final frame reporting a mid-stream failure."""

    def error_response(self, status_code: int, kind: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=self.error_body(self.error_codes[kind], message),
        )

    # Request flow

    async def handle(self, request: Request) -> Response:
        """Handle a chat request end to end."""
        if request.method != "POST":
            return self.error_response(
                status.HTTP_405_METHOD_NOT_ALLOWED, ErrorKind.METHOD_NOT_ALLOWED, "Use POST"
            )

        body = await request.body()
        try:
            payload = json.loads(body)
        except ValueError:
            return self.error_response(
                status.HTTP_400_BAD_REQUEST,
                ErrorKind.INVALID_JSON,
                "Request body is not valid JSON",
            )

        if not isinstance(payload, dict):
            return self.error_response(
                status.HTTP_400_BAD_REQUEST,
                ErrorKind.INVALID_REQUEST,
                "Request body must be a JSON object",
            )

        if not payload.get("model"):
            return self.error_response(
                status.HTTP_400_BAD_REQUEST, ErrorKind.INVALID_REQUEST, "model is required"
            )

        if not payload.get("messages"):
            return self.error_response(
                status.HTTP_400_BAD_REQUEST, ErrorKind.INVALID_REQUEST, "messages is required"
            )

        try:
            chat_request = self.request_model.model_validate(payload)
        except ValidationError as e:
            return self.error_response(
                status.HTTP_400_BAD_REQUEST, ErrorKind.INVALID_REQUEST, _validation_message(e)
            )

        settings = self._settings_provider()
        self._models.set_cache_ttl(settings.model_cache_ttl)

        model = await self._models.get_model(chat_request.model)
        if model is None:
            return self.error_response(
                status.HTTP_404_NOT_FOUND,
                ErrorKind.NOT_FOUND,
                f"Model '{chat_request.model}' not available",
            )

        messages = self.convert_messages(chat_request)
        options = build_model_options(chat_request)

        if chat_request.stream:
            return StreamingResponse(
                self._event_stream(chat_request, model, messages, options, settings),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        return await self._complete(chat_request, model, messages, options, settings)

    async def _complete(
        self,
        chat_request: Any,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        settings: Settings,
    ) -> Response:
        started = time.perf_counter()
        input_tokens = estimate_message_tokens(messages)

        self._stats.connection_start()
        try:
            result = await self._completions.complete(model, messages, options, settings)
        except Exception as e:
            self._record(chat_request.model, started, input_tokens, 0, error=e)
            if is_cancellation(e):
                return self.error_response(
                    status.HTTP_408_REQUEST_TIMEOUT,
                    ErrorKind.TIMEOUT,
                    f"Request exceeded {settings.timeout:g}s timeout",
                )
            return self.error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorKind.BACKEND, str(e) or repr(e)
            )
        finally:
            self._stats.connection_end()

        output_tokens = estimate_tokens(result.content)
        self._record(
            chat_request.model, started, input_tokens, output_tokens, cached=result.cached
        )

        envelope = self.build_response(
            chat_request, result, self.new_response_id(), input_tokens, output_tokens
        )
        return JSONResponse(content=envelope.model_dump())

    async def _event_stream(
        self,
        chat_request: Any,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        settings: Settings,
    ) -> AsyncIterator[str]:
        response_id = self.new_response_id()
        started = time.perf_counter()
        input_tokens = estimate_message_tokens(messages)
        parts: list[str] = []
        error: Exception | None = None

        self._stats.connection_start()
        try:
            for frame in self.stream_prologue(chat_request, response_id):
                yield frame

            async for chunk in self._completions.stream(model, messages, options, settings):
                parts.append(chunk)
                yield self.stream_delta(chat_request, response_id, chunk)

            output_tokens = estimate_tokens("".join(parts))
            for frame in self.stream_epilogue(chat_request, response_id, output_tokens):
                yield frame
        except Exception as e:
            error = e
            logger.warning("Stream %s for %s failed: %s", response_id, model.id, e)
            yield self.stream_error(e, settings)
        finally:
            self._stats.connection_end()
            self._record(
                chat_request.model,
                started,
                input_tokens,
                estimate_tokens("".join(parts)),
                error=error,
            )

    def _record(
        self,
        model_id: str,
        started: float,
        input_tokens: int,
        output_tokens: int,
        error: Exception | None = None,
        cached: bool = False,
    ) -> None:
        self._stats.record_request(
            RequestRecord(
                timestamp=time.time(),
                model=model_id,
                latency_ms=(time.perf_counter() - started) * 1000,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                success=error is None,
                error=str(error) if error is not None else None,
                cached=cached,
            )
        )
