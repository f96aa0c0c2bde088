"""
In-process cache with bounded capacity and per-entry TTL.

Instances are created by whoever owns them (session store, knowledge
store, channel directory) and passed by reference; there is no module
level cache. Writes reset an entry's expiry, so an entry that keeps being
written never expires (sliding TTL). Reads can optionally slide it too.
"""
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable

_MISSING = object()


class TTLCache:

    def __init__(
        self,
        maxsize: int = 1024,
        ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            maxsize: Maximum number of live entries; least recently used is evicted first
            ttl: Seconds an entry lives after its last write
            clock: Monotonic time source, injectable for tests
        """
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self.ttl = ttl
        self._clock = clock
        self._data: OrderedDict[Hashable, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None, refresh: bool = False) -> Any:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return default
            value, expires_at = item
            now = self._clock()
            if expires_at <= now:
                del self._data[key]
                return default
            self._data.move_to_end(key)
            if refresh:
                self._data[key] = (value, now + self.ttl)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._data[key] = (value, self._clock() + self.ttl)
            self._data.move_to_end(key)
            self._evict()

    def delete(self, key: Hashable) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def expire(self) -> int:
        """Drop expired entries now. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, (_, expires_at) in self._data.items() if expires_at <= now]
            for key in expired:
                del self._data[key]
            return len(expired)

    def _evict(self) -> None:
        if len(self._data) <= self.maxsize:
            return
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._data.items() if expires_at <= now]:
            del self._data[key]
        while len(self._data) > self.maxsize:
            self._data.popitem(last=False)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for _, expires_at in self._data.values() if expires_at > now)
