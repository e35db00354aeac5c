"""Protocol interfaces for the gateway's external collaborators.

Protocols use structural typing: any object with matching methods
satisfies them, which keeps the core independent of the concrete backend
and lets tests inject in-memory fakes.
"""

from .backend_invoker import BackendInvoker
from .model_catalog import ModelCatalog

__all__ = [
    "BackendInvoker",
    "ModelCatalog",
]
