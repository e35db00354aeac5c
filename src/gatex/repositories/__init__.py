"""Repository layer for external model backends.

Concrete implementations of the protocols in ``gatex.protocols``. They are
protocol-based (structural typing), not inheritance-based.
"""

from gatex.protocols import BackendInvoker, ModelCatalog

from .ollama_backend import OllamaBackend

__all__ = [
    "BackendInvoker",
    "ModelCatalog",
    "OllamaBackend",
]
