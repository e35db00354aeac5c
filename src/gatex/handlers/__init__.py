"""Handler layer for HTTP endpoints.

Handlers depend on services (business logic), not directly on the backend.

Architecture:
    Handler -> Service -> Backend
    (HTTP)  -> (Queue, Cache) -> (Model invocation)
"""

from .anthropic_handler import AnthropicHandler, anthropic_error_body
from .base import ChatHandler, ErrorKind
from .openai_handler import OpenAIHandler, openai_error_body
from .system_handler import SystemHandler

__all__ = [
    "AnthropicHandler",
    "anthropic_error_body",
    "ChatHandler",
    "ErrorKind",
    "OpenAIHandler",
    "openai_error_body",
    "SystemHandler",
]
