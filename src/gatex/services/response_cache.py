"""Response cache for buffered completions.

An in-memory, byte-budgeted, TTL-bounded LRU cache keyed by a request
fingerprint. Entries live in an insertion-ordered dict: a hit moves the
entry to the end, eviction always removes from the front.
"""

import hashlib
import json
import logging
import time
from collections.abc import Callable
from typing import Any

from gatex.entities import CacheEntryEntity, CacheStats, ChatMessage

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 50 * 1024 * 1024  # 50MB
DEFAULT_MAX_AGE = 5 * 60  # 5 minutes
DEFAULT_KEY_LENGTH = 16


def _message_payload(message: ChatMessage | dict[str, Any]) -> dict[str, Any]:
    if isinstance(message, ChatMessage):
        return message.to_dict()
    return message


class ResponseCache:
    """Size- and age-bounded response cache.

    Example:
        ```python
        cache = ResponseCache(max_size=10 * 1024 * 1024, max_age=60)

        key = cache.generate_key("llama3", messages, {"temperature": 0})
        if (response := cache.get(key)) is None:
            response = await compute()
            cache.set(key, response)
        ```
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        max_age: float = DEFAULT_MAX_AGE,
        key_length: int = DEFAULT_KEY_LENGTH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            max_size: Byte budget for all stored entries (estimated).
            max_age: Seconds an entry stays valid after insertion.
            key_length: Hex characters kept from the SHA-256 fingerprint (max 64).
            clock: Time source in seconds.
        """
        if not 1 <= key_length <= 64:
            raise ValueError("key_length must be between 1 and 64")

        self._entries: dict[str, CacheEntryEntity] = {}
        self._max_size = max_size
        self._max_age = max_age
        self._key_length = key_length
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._enabled = True

    def generate_key(
        self,
        model: str,
        messages: list[ChatMessage] | list[dict[str, Any]],
        options: dict[str, Any] | None = None,
    ) -> str:
        """Fingerprint a request.

        Deterministic and sensitive to message order. Option keys are sorted
        so equivalent option dicts share a key. The digest is truncated to
        ``key_length`` hex characters, so distinct requests can collide.

        Args:
            model: Model identifier
            messages: Ordered conversation
            options: Generation options

        Returns:
            Hex fingerprint
        """
        payload = json.dumps(
            {
                "model": model,
                "messages": [_message_payload(m) for m in messages],
                "options": options,
            },
            sort_keys=True,
            ensure_ascii=False,
        )
        digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
        return digest[: self._key_length]

    def get(self, key: str) -> Any | None:
        """Look up a response.

        A hit increments the entry's hit count and promotes it to
        most-recently-used. An expired entry is removed and counted as a miss.

        Returns:
            The cached response, or None if absent, expired or disabled
        """
        if not self._enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if self._is_expired(entry):
            del self._entries[key]
            self._misses += 1
            return None

        entry.hits += 1
        self._hits += 1

        # Move to end (LRU)
        del self._entries[key]
        self._entries[key] = entry

        return entry.response

    def set(self, key: str, response: Any) -> None:
        """Store a response, evicting the oldest entries until it fits."""
        if not self._enabled:
            return

        size = self._estimate_size(response)
        if size > self._max_size:
            logger.debug("Response of %d bytes exceeds cache budget, not cached", size)
            return

        self._entries.pop(key, None)
        self._evict_if_needed(size)

        self._entries[key] = CacheEntryEntity(
            response=response,
            timestamp=self._clock(),
            size=size,
        )

    def has(self, key: str) -> bool:
        """Check if a key is present and unexpired, without counting a lookup."""
        entry = self._entries.get(key)
        if entry is None:
            return False

        if self._is_expired(entry):
            del self._entries[key]
            return False

        return True

    def delete(self, key: str) -> bool:
        """Delete an entry.

        Returns:
            True if an entry was removed
        """
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries and reset hit/miss counters."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable the cache. Disabling drops all state."""
        if self._enabled != enabled:
            logger.info("Response cache %s", "enabled" if enabled else "disabled")
        self._enabled = enabled
        if not enabled:
            self.clear()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_age(self) -> float:
        return self._max_age

    @max_age.setter
    def max_age(self, max_age: float) -> None:
        self._max_age = max_age

    @property
    def max_size(self) -> int:
        return self._max_size

    def get_stats(self) -> CacheStats:
        """Get cache statistics.

        Returns:
            CacheStats with hit rate as a percentage
        """
        lookups = self._hits + self._misses
        hit_rate = (self._hits / lookups) * 100 if lookups > 0 else 0.0

        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            entries=len(self._entries),
            total_size=self._total_size(),
            hit_rate=hit_rate,
        )

    def _is_expired(self, entry: CacheEntryEntity) -> bool:
        return self._clock() - entry.timestamp > self._max_age

    def _total_size(self) -> int:
        return sum(entry.size for entry in self._entries.values())

    def _evict_if_needed(self, new_size: int) -> None:
        total_size = self._total_size()

        while self._entries and total_size + new_size > self._max_size:
            oldest_key = next(iter(self._entries))
            total_size -= self._entries.pop(oldest_key).size
            logger.debug("Evicted cache entry %s", oldest_key)

    @staticmethod
    def _estimate_size(response: Any) -> int:
        # Two bytes per character of the serialized form
        serialized = json.dumps(response, ensure_ascii=False, separators=(",", ":"), default=str)
        return len(serialized) * 2
