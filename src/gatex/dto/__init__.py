"""Data Transfer Objects for API contracts.

These Pydantic models define the external wire formats of both
protocols. Internal logic uses entities from the entities package.
"""

from .requests import (
    AnthropicMessage,
    AnthropicMessagesRequest,
    OpenAIChatMessage,
    OpenAIChatRequest,
    TextContentPart,
    join_text_parts,
)
from .responses import (
    AnthropicMessageResponse,
    AnthropicTextBlock,
    AnthropicUsage,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkChoice,
    HealthResponse,
    ModelItem,
    ModelListResponse,
    OpenAIChoice,
    OpenAIResponseMessage,
    OpenAIUsage,
    StatsResponse,
)

__all__ = [
    "AnthropicMessage",
    "AnthropicMessagesRequest",
    "OpenAIChatMessage",
    "OpenAIChatRequest",
    "TextContentPart",
    "join_text_parts",
    "AnthropicMessageResponse",
    "AnthropicTextBlock",
    "AnthropicUsage",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChunkChoice",
    "HealthResponse",
    "ModelItem",
    "ModelListResponse",
    "OpenAIChoice",
    "OpenAIResponseMessage",
    "OpenAIUsage",
    "StatsResponse",
]
