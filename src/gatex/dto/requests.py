"""Request DTOs for the wire protocols.

Unknown fields are accepted and ignored so clients sending newer
parameters are not rejected.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class TextContentPart(BaseModel):
    """A ``{"type": "text", "text": ...}`` content block."""

    type: str = "text"
    text: str = ""

    model_config = {"extra": "allow"}


def join_text_parts(content: str | list[TextContentPart] | None) -> str:
    """Flatten string-or-blocks content into plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "".join(part.text for part in content if part.type == "text")


class OpenAIChatMessage(BaseModel):
    """Message in an OpenAI chat completion request."""

    role: str = Field(..., description="system, user or assistant")
    content: str | list[TextContentPart] | None = None

    model_config = {"extra": "allow"}


class OpenAIChatRequest(BaseModel):
    """Request DTO for ``POST /chat/completions``."""

    model: str = Field(..., min_length=1, description="Requested model id")
    messages: list[OpenAIChatMessage] = Field(..., min_length=1)
    max_tokens: int | None = Field(None, ge=1)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    stream: bool = False

    model_config = {"extra": "allow"}


class AnthropicMessage(BaseModel):
    """Message in an Anthropic messages request."""

    role: Literal["user", "assistant"]
    content: str | list[TextContentPart]

    model_config = {"extra": "allow"}


class AnthropicMessagesRequest(BaseModel):
    """Request DTO for ``POST /messages``."""

    model: str = Field(..., min_length=1, description="Requested model id")
    messages: list[AnthropicMessage] = Field(..., min_length=1)
    system: str | list[TextContentPart] | None = None
    max_tokens: int = Field(..., ge=1)
    temperature: float | None = Field(None, ge=0.0, le=1.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    stream: bool = False

    model_config = {"extra": "allow"}
