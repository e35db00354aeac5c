"""Ollama-based model backend.

Uses Ollama's local API both as the model catalog and as the backend
invoker. Ollama serves models locally without API keys.

Requirements:
    - Ollama installed: https://ollama.com
    - A model pulled: `ollama pull llama3.2`
    - Ollama running: `ollama serve` (usually runs automatically)

Endpoints used:
- GET  /api/tags  (model listing)
- POST /api/chat  (streaming chat, newline-delimited JSON)
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from gatex.config import get_settings
from gatex.entities import ChatMessage, ModelInfo
from gatex.errors import BackendError
from gatex.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Connect and model-listing timeout; chat stream reads are not bounded here
CONNECT_TIMEOUT = 30.0

# Gateway option name -> Ollama option name
OPTION_NAMES = {
    "temperature": "temperature",
    "top_p": "top_p",
    "max_tokens": "num_predict",
}


class OllamaBackend:
    """Ollama implementation of the BackendInvoker and ModelCatalog protocols.

    This class satisfies both protocols through structural typing - no
    explicit inheritance needed.

    Example:
        ```python
        backend = OllamaBackend.create(base_url="http://localhost:11434")

        models = await backend.list_models()
        stream = await backend.invoke(models[0], messages, {}, token)
        async for chunk in stream:
            print(chunk, end="")
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = CONNECT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Ollama backend.

        Args:
            base_url: Ollama API base URL.
                     Defaults to settings.ollama_base_url.
            timeout: Connect, write and pool timeout in seconds. Also bounds reads
                     of the model listing; chat stream reads are unbounded.
            transport: Optional httpx transport (for testing).
        """
        self._base_url = (base_url or get_settings().ollama_base_url).rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout, read=None),
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
                transport=self._transport,
            )
        return self._client

    @classmethod
    def create(
        cls, base_url: str | None = None, timeout: float = CONNECT_TIMEOUT
    ) -> "OllamaBackend":
        """Factory method to create OllamaBackend with defaults.

        Args:
            base_url: Ollama API URL. If None, uses settings.
            timeout: Connect timeout in seconds.

        Returns:
            Configured OllamaBackend
        """
        return cls(base_url=base_url, timeout=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def list_models(self) -> list[ModelInfo]:
        """List locally available models.

        Returns:
            Models in the order Ollama reports them

        Raises:
            BackendError: If the Ollama API request fails
        """
        try:
            response = await self.client.get("/api/tags", timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"Ollama API error: {e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e

        models = []
        for item in response.json().get("models", []):
            details = item.get("details") or {}
            model_id = item.get("model") or item["name"]
            models.append(
                ModelInfo(
                    id=model_id,
                    name=item.get("name", model_id),
                    vendor="ollama",
                    family=details.get("family", ""),
                )
            )
        return models

    def build_payload(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
    ) -> dict[str, Any]:
        """Build the ``/api/chat`` request body."""
        payload: dict[str, Any] = {
            "model": model.id,
            "messages": [m.to_dict() for m in messages],
            "stream": True,
        }

        ollama_options = {
            OPTION_NAMES[name]: value for name, value in options.items() if name in OPTION_NAMES
        }
        if ollama_options:
            payload["options"] = ollama_options

        return payload

    async def invoke(
        self,
        model: ModelInfo,
        messages: list[ChatMessage],
        options: dict[str, Any],
        cancellation: CancellationToken,
    ) -> AsyncIterator[str]:
        """Start a streaming chat call.

        Returns:
            Async iterator of content pieces; the HTTP request is made on the
            first iteration
        """
        return self._stream_chat(self.build_payload(model, messages, options), cancellation)

    async def _stream_chat(
        self,
        payload: dict[str, Any],
        cancellation: CancellationToken,
    ) -> AsyncIterator[str]:
        logger.debug(
            "Ollama chat: model=%s messages=%d", payload["model"], len(payload["messages"])
        )
        async with self.client.stream("POST", "/api/chat", json=payload) as response:
            if response.is_error:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise BackendError(
                    f"Ollama API error: {response.status_code} {response.reason_phrase}: {body}",
                    status_code=response.status_code,
                )

            async for line in response.aiter_lines():
                cancellation.raise_if_cancelled()
                if not line.strip():
                    continue

                data = json.loads(line)
                if "error" in data:
                    raise BackendError(f"Ollama API error: {data['error']}")

                content = (data.get("message") or {}).get("content")
                if content:
                    yield content

                if data.get("done"):
                    break

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
