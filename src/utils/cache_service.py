"""
In-memory LRU cache with TTL.

Used in front of model calls so repeated ticket texts do not pay twice.
Survives across warm Lambda invocations.
"""

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Optional


class LRUCache:
    """Thread-safe LRU cache with TTL support."""

    def __init__(self, max_size: int = 100, ttl_seconds: int = 300):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._cache: "OrderedDict[str, tuple[Any, datetime]]" = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if present and not expired."""
        with self._lock:
            if key not in self._cache:
                return None

            value, stored_at = self._cache[key]
            if datetime.now(timezone.utc) - stored_at > timedelta(seconds=self.ttl_seconds):
                del self._cache[key]
                return None

            self._cache.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            self._cache[key] = (value, datetime.now(timezone.utc))

            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
