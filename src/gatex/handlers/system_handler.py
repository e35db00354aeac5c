"""HTTP handlers for the gateway's informational endpoints."""

import time
from datetime import datetime, timezone
from typing import Any

from gatex import __version__
from gatex.dto import HealthResponse, ModelItem, ModelListResponse, StatsResponse
from gatex.services import CompletionService, ModelService, TrafficStats


class SystemHandler:
    """Handlers for ``/``, ``/models``, ``/health`` and ``/stats``.

    Example:
        ```python
        handler = SystemHandler(model_service, completion_service, traffic_stats)

        @app.get("/health")
        async def health():
            return await handler.health(port=8000)
        ```
    """

    def __init__(
        self,
        model_service: ModelService,
        completion_service: CompletionService,
        traffic_stats: TrafficStats,
    ) -> None:
        self._models = model_service
        self._completions = completion_service
        self._stats = traffic_stats

    def root(self) -> dict[str, Any]:
        """Service descriptor."""
        return {
            "name": "GateX",
            "version": __version__,
            "description": "Your gateway to AI models",
            "endpoints": {
                "openai": {
                    "models": "/v1/models",
                    "chat": "/v1/chat/completions",
                },
                "anthropic": {
                    "messages": "/v1/messages",
                },
                "utility": {
                    "health": "/v1/health",
                    "stats": "/v1/stats",
                },
            },
        }

    async def list_models(self) -> ModelListResponse:
        """OpenAI-style model list."""
        models = await self._models.get_models()
        created = int(time.time())

        return ModelListResponse(
            data=[
                ModelItem(
                    id=m.id,
                    created=created,
                    owned_by=m.vendor,
                    name=m.name,
                    context_window=m.max_input_tokens,
                )
                for m in models
            ]
        )

    async def health(self, port: int) -> HealthResponse:
        return HealthResponse(
            status="healthy",
            version=__version__,
            port=port,
            models=await self._models.get_model_count(),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def stats(self) -> StatsResponse:
        """Queue, cache and traffic statistics."""
        queue = self._completions.queue
        return StatsResponse(
            queue={
                **queue.get_stats().to_dict(),
                "queue_length": queue.get_queue_length(),
                "max_concurrent": queue.max_concurrent,
            },
            cache={
                **self._completions.cache.get_stats().to_dict(),
                "enabled": self._completions.cache.enabled,
            },
            traffic=self._stats.to_dict(),
        )
