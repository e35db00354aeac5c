"""Model catalog protocol.

Model discovery lives outside the gateway core; the core only needs a
list of available models to resolve requested ids against.
"""

from typing import Protocol, runtime_checkable

from gatex.entities import ModelInfo


@runtime_checkable
class ModelCatalog(Protocol):
    """Protocol for model discovery sources."""

    async def list_models(self) -> list[ModelInfo]:
        """List the models currently available, in discovery order.

        Returns:
            Available models (may be empty)
        """
        ...
