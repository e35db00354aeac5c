"""Anthropic-compatible messages handler."""

import uuid
from collections.abc import Iterable
from typing import Any

from gatex.config import Settings
from gatex.dto import (
    AnthropicMessageResponse,
    AnthropicMessagesRequest,
    AnthropicTextBlock,
    AnthropicUsage,
    join_text_parts,
)
from gatex.entities import ChatMessage, CompletionResult
from gatex.errors import is_cancellation
from gatex.utils import sse

from .base import ChatHandler, ErrorKind


def anthropic_error_body(error_type: str, message: str) -> dict[str, Any]:
    """Anthropic error shape: ``{"type": "error", "error": {"type", "message"}}``."""
    return {"type": "error", "error": {"type": error_type, "message": message}}


class AnthropicHandler(ChatHandler):
    """Handles ``POST /messages``.

    Streaming responses use named events in a fixed order:
    message_start, content_block_start, content_block_delta (one per
    chunk), content_block_stop, message_delta, message_stop.
    """

    request_model = AnthropicMessagesRequest
    error_codes = {
        ErrorKind.INVALID_JSON: "invalid_request_error",
        ErrorKind.INVALID_REQUEST: "invalid_request_error",
        ErrorKind.NOT_FOUND: "not_found_error",
        ErrorKind.METHOD_NOT_ALLOWED: "method_not_allowed",
        ErrorKind.TIMEOUT: "timeout_error",
        ErrorKind.BACKEND: "api_error",
    }

    def error_body(self, code: str, message: str) -> dict[str, Any]:
        return anthropic_error_body(code, message)

    def convert_messages(self, request: AnthropicMessagesRequest) -> list[ChatMessage]:
        messages = []

        # The system prompt becomes a leading user turn
        system = join_text_parts(request.system)
        if system:
            messages.append(ChatMessage.user(system))

        for message in request.messages:
            content = join_text_parts(message.content)
            if message.role == "user":
                messages.append(ChatMessage.user(content))
            else:
                messages.append(ChatMessage.assistant(content))

        return messages

    def new_response_id(self) -> str:
        return f"msg_{uuid.uuid4().hex[:24]}"

    def build_response(
        self,
        request: AnthropicMessagesRequest,
        result: CompletionResult,
        response_id: str,
        input_tokens: int,
        output_tokens: int,
    ) -> AnthropicMessageResponse:
        return AnthropicMessageResponse(
            id=response_id,
            content=[AnthropicTextBlock(text=result.content)],
            model=request.model,
            stop_reason="end_turn",
            usage=AnthropicUsage(input_tokens=input_tokens, output_tokens=output_tokens),
        )

    def stream_prologue(self, request: AnthropicMessagesRequest, response_id: str) -> Iterable[str]:
        yield sse.event_frame(
            "message_start",
            {
                "type": "message_start",
                "message": {
                    "id": response_id,
                    "type": "message",
                    "role": "assistant",
                    "content": [],
                    "model": request.model,
                    "stop_reason": None,
                    "stop_sequence": None,
                    "usage": {"input_tokens": 0, "output_tokens": 0},
                },
            },
        )
        yield sse.event_frame(
            "content_block_start",
            {
                "type": "content_block_start",
                "index": 0,
                "content_block": {"type": "text", "text": ""},
            },
        )

    def stream_delta(self, request: AnthropicMessagesRequest, response_id: str, chunk: str) -> str:
        return sse.event_frame(
            "content_block_delta",
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "text_delta", "text": chunk},
            },
        )

    def stream_epilogue(
        self, request: AnthropicMessagesRequest, response_id: str, output_tokens: int
    ) -> Iterable[str]:
        yield sse.event_frame("content_block_stop", {"type": "content_block_stop", "index": 0})
        yield sse.event_frame(
            "message_delta",
            {
                "type": "message_delta",
                "delta": {"stop_reason": "end_turn", "stop_sequence": None},
                "usage": {"output_tokens": output_tokens},
            },
        )
        yield sse.event_frame("message_stop", {"type": "message_stop"})

    def stream_error(self, error: Exception, settings: Settings) -> str:
        if is_cancellation(error):
            error_type = self.error_codes[ErrorKind.TIMEOUT]
            message = f"Request exceeded {settings.timeout:g}s timeout"
        else:
            error_type = self.error_codes[ErrorKind.BACKEND]
            message = str(error) or repr(error)
        return sse.event_frame("error", anthropic_error_body(error_type, message))
