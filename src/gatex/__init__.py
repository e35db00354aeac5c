"""GateX - OpenAI- and Anthropic-compatible gateway to a model backend.

This package provides a layered architecture for the gateway:

Layers:
    - protocols: Interface contracts (BackendInvoker, ModelCatalog)
    - repositories: Concrete backends (Ollama)
    - services: Business logic (request queue, response cache, completions)
    - handlers: HTTP endpoint handlers for both wire protocols
    - dto: Data transfer objects (wire contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from gatex.services import RequestQueue, ResponseCache

    queue = RequestQueue(max_concurrent=5)
    cache = ResponseCache(max_age=300)
    ```

For the HTTP API:
    ```python
    from gatex.api.app import app, create_app
    ```
"""

__version__ = "1.0.0"

from gatex.config import Settings, get_settings  # noqa: E402
from gatex.entities import ChatMessage, CompletionResult, ModelInfo, Role  # noqa: E402
from gatex.errors import (  # noqa: E402
    BackendError,
    GatewayError,
    QueueClearedError,
    RequestCancelledError,
)
from gatex.protocols import BackendInvoker, ModelCatalog  # noqa: E402
from gatex.services import (  # noqa: E402
    CompletionService,
    ModelService,
    RequestQueue,
    ResponseCache,
    TrafficStats,
)

__all__ = [
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Protocols (interfaces)
    "BackendInvoker",
    "ModelCatalog",
    # Services (business logic)
    "CompletionService",
    "ModelService",
    "RequestQueue",
    "ResponseCache",
    "TrafficStats",
    # Entities (domain models)
    "ChatMessage",
    "CompletionResult",
    "ModelInfo",
    "Role",
    # Errors
    "GatewayError",
    "BackendError",
    "QueueClearedError",
    "RequestCancelledError",
]
