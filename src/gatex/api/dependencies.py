"""Dependency injection configuration for the FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services built once per app by ``init_state`` and stored in app.state
    - Dependency functions retrieve them from request.app.state
    - No process-wide singletons: every app owns its queue and cache
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from gatex.config import Settings
from gatex.handlers import AnthropicHandler, OpenAIHandler, SystemHandler
from gatex.protocols import BackendInvoker, ModelCatalog
from gatex.services import (
    CompletionService,
    ModelService,
    RequestQueue,
    ResponseCache,
    TrafficStats,
)

logger = logging.getLogger(__name__)


def init_state(
    app: FastAPI,
    backend: BackendInvoker,
    catalog: ModelCatalog,
    settings_provider: Callable[[], Settings],
    queue: RequestQueue | None = None,
    cache: ResponseCache | None = None,
) -> None:
    """Build all layers and store them in app.state.

    1. Queue and cache - created from the current settings unless given
    2. Services (business logic) - completion, models, traffic stats
    3. Handlers (HTTP) - one per protocol plus the system endpoints

    Args:
        app: The FastAPI application instance
        backend: Model backend used for every chat request
        catalog: Source of available models
        settings_provider: Called once per request for current configuration
        queue: Optional pre-built request queue
        cache: Optional pre-built response cache
    """
    settings = settings_provider()

    queue = queue or RequestQueue(max_concurrent=settings.max_concurrent_requests)
    cache = cache or ResponseCache(
        max_size=settings.cache_max_size,
        max_age=settings.cache_max_age,
    )

    completion_service = CompletionService(backend=backend, queue=queue, cache=cache)
    model_service = ModelService(catalog=catalog, cache_ttl=settings.model_cache_ttl)
    traffic_stats = TrafficStats()

    app.state.settings_provider = settings_provider
    app.state.backend = backend
    app.state.completion_service = completion_service
    app.state.model_service = model_service
    app.state.traffic_stats = traffic_stats
    app.state.port = settings.port
    app.state.openai_handler = OpenAIHandler(
        completion_service, model_service, traffic_stats, settings_provider
    )
    app.state.anthropic_handler = AnthropicHandler(
        completion_service, model_service, traffic_stats, settings_provider
    )
    app.state.system_handler = SystemHandler(model_service, completion_service, traffic_stats)


def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Check init_state setup.")
    return value


def get_openai_handler(request: Request) -> OpenAIHandler:
    """Dependency injection for OpenAIHandler from app.state.

    Raises:
        RuntimeError: If the handler is not initialized
    """
    return _from_state(request, "openai_handler")


def get_anthropic_handler(request: Request) -> AnthropicHandler:
    """Dependency injection for AnthropicHandler from app.state.

    Raises:
        RuntimeError: If the handler is not initialized
    """
    return _from_state(request, "anthropic_handler")


def get_system_handler(request: Request) -> SystemHandler:
    """Dependency injection for SystemHandler from app.state.

    Raises:
        RuntimeError: If the handler is not initialized
    """
    return _from_state(request, "system_handler")


def get_port(request: Request) -> int:
    return getattr(request.app.state, "port", 0)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Logs the effective configuration on startup and closes the backend's
    HTTP resources on shutdown.
    """
    settings = app.state.settings_provider()
    logger.info("GateX starting")
    logger.info(
        "Timeout: %gs, max retries: %d, max concurrent: %d",
        settings.timeout,
        settings.max_retries,
        settings.max_concurrent_requests,
    )
    logger.info(
        "Response cache: %s (max age %gs)",
        "enabled" if settings.cache_enabled else "disabled",
        settings.cache_max_age,
    )

    yield

    close = getattr(app.state.backend, "close", None)
    if close is not None:
        await close()
    logger.info("GateX stopped")


# Type aliases for cleaner dependency injection
OpenAIHandlerDep = Annotated[OpenAIHandler, Depends(get_openai_handler)]
AnthropicHandlerDep = Annotated[AnthropicHandler, Depends(get_anthropic_handler)]
SystemHandlerDep = Annotated[SystemHandler, Depends(get_system_handler)]
PortDep = Annotated[int, Depends(get_port)]
