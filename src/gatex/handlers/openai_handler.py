"""OpenAI-compatible chat completions handler."""

import time
import uuid
from collections.abc import Iterable
from typing import Any

from gatex.config import Settings
from gatex.dto import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkChoice,
    OpenAIChatRequest,
    OpenAIChoice,
    OpenAIResponseMessage,
    OpenAIUsage,
    join_text_parts,
)
from gatex.entities import ChatMessage, CompletionResult
from gatex.errors import is_cancellation
from gatex.utils import sse

from .base import ChatHandler, ErrorKind


def openai_error_body(code: str, message: str) -> dict[str, Any]:
    """OpenAI error shape: ``{"error": {"code", "message", "type"}}``."""
    return {"error": {"code": code, "message": message, "type": "error"}}


class OpenAIHandler(ChatHandler):
    """Handles ``POST /chat/completions``.

    Streaming responses are a sequence of ``chat.completion.chunk`` objects
    framed as ``data: <json>``, a final chunk with ``finish_reason: "stop"``
    and the literal ``data: [DONE]`` line.
    """

    request_model = OpenAIChatRequest
    error_codes = {
        ErrorKind.INVALID_JSON: "invalid_json",
        ErrorKind.INVALID_REQUEST: "invalid_request",
        ErrorKind.NOT_FOUND: "model_not_found",
        ErrorKind.METHOD_NOT_ALLOWED: "method_not_allowed",
        ErrorKind.TIMEOUT: "timeout",
        ErrorKind.BACKEND: "model_error",
    }

    def error_body(self, code: str, message: str) -> dict[str, Any]:
        return openai_error_body(code, message)

    def convert_messages(self, request: OpenAIChatRequest) -> list[ChatMessage]:
        messages = []
        for message in request.messages:
            content = join_text_parts(message.content)
            if message.role == "system":
                messages.append(ChatMessage.system(content))
            elif message.role == "assistant":
                messages.append(ChatMessage.assistant(content))
            else:
                messages.append(ChatMessage.user(content))
        return messages

    def new_response_id(self) -> str:
        return f"chatcmpl-{uuid.uuid4().hex[:24]}"

    def build_response(
        self,
        request: OpenAIChatRequest,
        result: CompletionResult,
        response_id: str,
        input_tokens: int,
        output_tokens: int,
    ) -> ChatCompletionResponse:
        return ChatCompletionResponse(
            id=response_id,
            created=int(time.time()),
            model=request.model,
            choices=[
                OpenAIChoice(
                    index=0,
                    message=OpenAIResponseMessage(content=result.content),
                    finish_reason="stop",
                )
            ],
            usage=OpenAIUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
        )

    def _chunk(self, request: OpenAIChatRequest, response_id: str, choice: ChunkChoice) -> str:
        chunk = ChatCompletionChunk(
            id=response_id,
            created=int(time.time()),
            model=request.model,
            choices=[choice],
        )
        return sse.data_frame(chunk.model_dump())

    def stream_prologue(self, request: OpenAIChatRequest, response_id: str) -> Iterable[str]:
        return ()

    def stream_delta(self, request: OpenAIChatRequest, response_id: str, chunk: str) -> str:
        return self._chunk(request, response_id, ChunkChoice(delta={"content": chunk}))

    def stream_epilogue(
        self, request: OpenAIChatRequest, response_id: str, output_tokens: int
    ) -> Iterable[str]:
        yield self._chunk(request, response_id, ChunkChoice(delta={}, finish_reason="stop"))
        yield sse.DONE_FRAME

    def stream_error(self, error: Exception, settings: Settings) -> str:
        if is_cancellation(error):
            payload = {
                "message": f"Request exceeded {settings.timeout:g}s timeout",
                "type": "timeout",
                "code": self.error_codes[ErrorKind.TIMEOUT],
            }
        else:
            payload = {
                "message": str(error) or repr(error),
                "type": "stream_error",
                "code": self.error_codes[ErrorKind.BACKEND],
            }
        return sse.data_frame({"error": payload})
