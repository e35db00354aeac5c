"""Service layer for business logic.

Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Backend
    (HTTP)  -> (Queue, Cache) -> (Model invocation)

Usage:
    ```python
    from gatex.services import CompletionService, RequestQueue, ResponseCache

    service = CompletionService(backend=backend, queue=RequestQueue(5), cache=ResponseCache())
    ```
"""

from .completion_service import CompletionService
from .model_service import ModelService, resolve_model
from .request_queue import RequestQueue, is_retryable
from .response_cache import ResponseCache
from .traffic_stats import TrafficStats

__all__ = [
    "CompletionService",
    "ModelService",
    "resolve_model",
    "RequestQueue",
    "is_retryable",
    "ResponseCache",
    "TrafficStats",
]
