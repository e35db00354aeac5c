"""Response cache entry entity."""

from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntryEntity:
    """A stored response in the in-memory response cache.

    Attributes:
        response: The cached payload (opaque to the cache)
        timestamp: Insertion time, from the cache's clock
        size: Estimated size in bytes
        hits: Number of successful lookups
    """

    response: Any
    timestamp: float
    size: int
    hits: int = 0


@dataclass(frozen=True)
class CacheStats:
    """Response cache statistics.

    Attributes:
        hits: Successful lookups since the last clear
        misses: Failed or expired lookups since the last clear
        entries: Number of stored entries
        total_size: Sum of estimated entry sizes in bytes
        hit_rate: hits / (hits + misses) as a percentage, 0 before any lookup
    """

    hits: int
    misses: int
    entries: int
    total_size: int
    hit_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "entries": self.entries,
            "total_size": self.total_size,
            "hit_rate": self.hit_rate,
        }
