"""Response DTOs for the wire protocols."""

from typing import Any, Literal

from pydantic import BaseModel, Field


# OpenAI


class OpenAIUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIResponseMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class OpenAIChoice(BaseModel):
    index: int = 0
    message: OpenAIResponseMessage
    finish_reason: str | None = "stop"


class ChatCompletionResponse(BaseModel):
    """Buffered ``chat.completion`` object."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[OpenAIChoice]
    usage: OpenAIUsage = Field(default_factory=OpenAIUsage)


class ChunkChoice(BaseModel):
    index: int = 0
    delta: dict[str, str] = Field(default_factory=dict)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """Streaming ``chat.completion.chunk`` object."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChunkChoice]


class ModelItem(BaseModel):
    id: str
    object: Literal["model"] = "model"
    created: int
    owned_by: str
    name: str
    context_window: int | None = None


class ModelListResponse(BaseModel):
    object: Literal["list"] = "list"
    data: list[ModelItem]


# Anthropic


class AnthropicUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicTextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class AnthropicMessageResponse(BaseModel):
    """Buffered ``message`` object."""

    id: str
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    content: list[AnthropicTextBlock]
    model: str
    stop_reason: str | None = "end_turn"
    stop_sequence: str | None = None
    usage: AnthropicUsage = Field(default_factory=AnthropicUsage)


# Gateway


class HealthResponse(BaseModel):
    status: str = Field(..., description="Health status: 'healthy'")
    server: str = "GateX"
    version: str
    port: int
    models: int = Field(..., description="Number of available models", ge=0)
    timestamp: str


class StatsResponse(BaseModel):
    queue: dict[str, Any]
    cache: dict[str, Any]
    traffic: dict[str, Any]
