"""Model descriptor entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ModelInfo:
    """A model exposed by the backend.

    Attributes:
        id: Backend identifier, used for exact matching
        name: Human-readable display name
        vendor: Owner reported in ``/models`` as ``owned_by``
        family: Model family (e.g. "llama", "gpt-4o")
        max_input_tokens: Context window, if known
    """

    id: str
    name: str
    vendor: str
    family: str
    max_input_tokens: int | None = None
