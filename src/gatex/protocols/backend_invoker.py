"""Backend invoker protocol.

Defines the interface for the component that actually executes an
inference call. The gateway never implements a model; it only invokes one
and consumes its streamed text.

Implementations can include:
- Ollama (local HTTP API, default)
- Any OpenAI-compatible upstream
- In-memory fakes for tests
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from gatex.entities import ChatMessage, ModelInfo
from gatex.utils.cancellation import CancellationToken


@runtime_checkable
class BackendInvoker(Protocol):
    """Protocol for model backends.

    Example:
        ```python
        stream = await backend.invoke(model, messages, {"temperature": 0.2}, token)
        async for chunk in stream:
            print(chunk, end="")
        ```
    """

    async def invoke(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        cancellation: CancellationToken,
    ) -> AsyncIterator[str]:
        """Start one inference call.

        Args:
            model: The resolved model to run
            messages: Ordered conversation, oldest first
            options: Free-form generation options (temperature, max_tokens, top_p)
            cancellation: Token that fires when the caller gives up

        Returns:
            An async iterator of text chunks. It may raise mid-stream.
        """
        ...
