"""Expiring result cache.

Thread-safe key/value cache with per-entry TTL and a size bound. When full,
the least recently used entry is evicted.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)


class TTLCache:
    """TTL + LRU cache guarded by a lock.

    Example:
        cache = TTLCache(ttl_seconds=300, max_size=512)
        cache.set(("AAPL", 24), result)
        cached = cache.get(("AAPL", 24))
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: int = 512,
        clock: Optional[Callable[[], float]] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._clock = clock or time.monotonic
        self._data: "OrderedDict[Hashable, tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                self._misses += 1
                return default
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._data[key]
                self._misses += 1
                return default
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        with self._lock:
            self._data[key] = (self._clock() + ttl, value)
            self._data.move_to_end(key)
            while len(self._data) > self.max_size:
                evicted, _ = self._data.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache entry %s", evicted)

    def invalidate(self, key: Hashable) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def purge_expired(self) -> int:
        """Drop all expired entries. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (exp, _) in self._data.items() if now >= exp]
            for key in expired:
                del self._data[key]
        return len(expired)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._data.get(key)
            return entry is not None and self._clock() < entry[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get_stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._data),
                "max_size": self.max_size,
                "ttl_seconds": self.ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": round(self._hits / total, 4) if total else 0.0,
            }
