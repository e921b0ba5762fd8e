# fulfillment_readiness/cache.py
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable


class LookupCache:
    """Bounded, time-limited cache for slow-changing lookups such as location names.

    Instances are created by the caller and injected where needed. Entries expire
    ``ttl_seconds`` after being stored; once ``max_size`` is reached the least
    recently used entry is evicted.
    """

    _MISSING = object()

    def __init__(self, max_size: int = 256, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default

            expires_at, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return default

            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value, calling ``loader`` on a miss.

        ``None`` results are not cached so a missing row is looked up again.
        """
        value = self.get(key, self._MISSING)
        if value is not self._MISSING:
            return value

        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)
