"""
In-process TTL cache and freshness helpers.

The browser session keeps the category list in a TTLCache so it is fetched once
and reused until it expires; the home feed cache uses is_fresh() for its
persisted timestamp. The clock is injected so tests can move time explicitly.
"""

import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

Clock = Callable[[], float]


def is_fresh(timestamp: Optional[float], ttl_seconds: float, now: float) -> bool:
    """
    Check whether something created at `timestamp` is still within its TTL.

    A missing timestamp, or one in the future (clock skew), is not fresh.
    """
    if timestamp is None:
        return False
    age = now - timestamp
    return 0 <= age < ttl_seconds


class TTLCache:
    """Small key -> (timestamp, value) cache with a single TTL."""

    def __init__(self, ttl_seconds: float, clock: Clock = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        """
        Return the cached value, or None if missing or expired.

        Expired entries are removed on access.
        """
        entry = self._entries.get(key)
        if not entry:
            return None

        timestamp, value = entry
        if not is_fresh(timestamp, self.ttl_seconds, self._clock()):
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        """Clear all cached entries (useful for testing)."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
