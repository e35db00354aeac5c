"""Model listing and resolution.

Wraps a ModelCatalog with a short-lived listing cache and implements the
gateway's model resolution policy.
"""

import logging
import time
from collections.abc import Callable

from gatex.entities import ModelInfo
from gatex.protocols import ModelCatalog

logger = logging.getLogger(__name__)


def resolve_model(models: list[ModelInfo], requested: str) -> ModelInfo | None:
    """Pick the model a request refers to.

    Policy, first match wins:
    1. Exact id match
    2. Otherwise the first model (in discovery order) whose id contains the
       requested string, whose family equals it, or whose display name
       contains it case-insensitively

    Args:
        models: Available models in discovery order
        requested: The model string from the request

    Returns:
        The matching model, or None
    """
    for model in models:
        if model.id == requested:
            return model

    needle = requested.lower()
    for model in models:
        if requested in model.id or model.family == requested or needle in model.name.lower():
            return model

    return None


class ModelService:
    """Cached access to the model catalog.

    Example:
        ```python
        service = ModelService(catalog=OllamaBackend.create())
        model = await service.get_model("llama3")
        ```
    """

    def __init__(
        self,
        catalog: ModelCatalog,
        cache_ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the model service.

        Args:
            catalog: Source of available models (required).
            cache_ttl: Seconds a model listing is reused.
            clock: Time source in seconds.
        """
        self._catalog = catalog
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._models: list[ModelInfo] | None = None
        self._fetched_at = 0.0

    async def get_models(self) -> list[ModelInfo]:
        """Get all available models.

        A failing catalog falls back to the last successful listing.
        """
        now = self._clock()
        if self._models is not None and now - self._fetched_at < self._cache_ttl:
            return self._models

        try:
            self._models = await self._catalog.list_models()
            self._fetched_at = now
        except Exception as e:
            logger.warning("Failed to fetch models: %s", e)
            return self._models or []

        return self._models

    async def get_model_count(self) -> int:
        return len(await self.get_models())

    async def get_model(self, model_id: str) -> ModelInfo | None:
        """Resolve a requested model id against the current listing."""
        return resolve_model(await self.get_models(), model_id)

    def set_cache_ttl(self, cache_ttl: float) -> None:
        self._cache_ttl = cache_ttl

    def clear_cache(self) -> None:
        self._models = None
        self._fetched_at = 0.0
