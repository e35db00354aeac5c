"""Buffered completion result entity."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CompletionResult:
    """Accumulated output of one backend call.

    Attributes:
        content: All streamed text chunks joined together
        elapsed_ms: Wall-clock time of the backend call
        cached: True when served from the response cache
    """

    content: str
    elapsed_ms: float
    cached: bool = False

    def to_cache_payload(self) -> dict[str, Any]:
        return {"content": self.content, "elapsed_ms": self.elapsed_ms}

    @classmethod
    def from_cache_payload(cls, payload: dict[str, Any]) -> "CompletionResult":
        return cls(content=payload["content"], elapsed_ms=payload["elapsed_ms"], cached=True)
