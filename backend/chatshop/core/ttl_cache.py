"""TTL Cache — in-process key/value memo with per-entry expiry.

Invariants:
    - An entry is never returned after its expiry instant
    - hits + misses == number of get() calls since the last clear()

Design Decisions:
    - Injectable clock: expiry testable without sleeping
    - Lazy expiry on read plus explicit cleanup(): no background timer in the core
    - Keys are namespaced strings ("product:netflix", "products:all", "settings:all");
      callers delete exactly the keys a mutation affects
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

MISSING: Any = object()


@dataclass(frozen=True)
class CacheStats:
    entries: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class TTLCache:
    """Keyed values with absolute expiry; pure in-memory state, no IO."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Any:
        """Return the cached value or MISSING."""
        entry = self._entries.get(key)
        if entry is not None:
            expires_at, value = entry
            if self._clock() < expires_at:
                self._hits += 1
                return value
            del self._entries[key]
        self._misses += 1
        return MISSING

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def cleanup(self) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=len(self._entries), hits=self._hits, misses=self._misses,
        )
