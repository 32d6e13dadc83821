"""Thread-safe in-memory cache with per-entry time-to-live."""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key -> (value, stored_at) map whose entries expire after *ttl* seconds.

    Writers replace whole entries under a lock, so readers always see either
    the previous value or the new one.  Two callers that miss at the same
    time both compute and store; the later ``set`` wins.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[V, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: V) -> None:
        with self._lock:
            now = self._clock()
            # Sweep expired entries on write.
            expired = [k for k, (_, stored_at) in self._entries.items() if now - stored_at >= self.ttl]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (value, now)

    def get_or_compute(self, key: Hashable, compute: Callable[[], V]) -> V:
        """Return the cached value or compute, store and return a fresh one.

        *compute* runs outside the lock.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        value = compute()
        self.set(key, value)
        return value

    def keys(self) -> List[Hashable]:
        """Snapshot of the stored keys, expired ones included."""
        with self._lock:
            return list(self._entries)

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
