"""
Small thread-safe TTL cache.
Holds short-lived per-user ranking snapshots so a feed is not reshuffled on every read.
"""
import time
from threading import Lock
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class ExpiringCache(Generic[T]):
    """
    In-memory cache whose entries expire after a fixed TTL.

    Usage:
        snapshots: ExpiringCache[List[str]] = ExpiringCache(ttl_seconds=15)
        order = snapshots.get_or_set(user_id, lambda: rank(user_id))
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._store: Dict[str, Tuple[T, float]] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[T]:
        """Get value by key, returns None if not found or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: str, value: T) -> None:
        """Store value for one TTL period."""
        with self._lock:
            self._store[key] = (value, self._clock() + self._ttl)

    def delete(self, key: str) -> bool:
        """Delete key, returns True if existed."""
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all entries."""
        with self._lock:
            self._store.clear()

    def get_or_set(self, key: str, factory: Callable[[], T]) -> T:
        """Get value or compute and cache it if missing."""
        value = self.get(key)
        if value is not None:
            return value

        # Compute outside lock to avoid blocking
        computed_value = factory()
        self.set(key, computed_value)
        return computed_value

    def size(self) -> int:
        """Return number of entries (including possibly expired)."""
        with self._lock:
            return len(self._store)
