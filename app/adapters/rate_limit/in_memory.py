"""In-memory counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limits.
- Thread-safe: uses a lock around shared state.
- Expired keys are dropped lazily on access.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore


@dataclass
class _Counter:
    count: int
    expires_at: float | None


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store backed by a dict, mirroring Redis INCR/EXPIRE semantics.

    Important:
        This store is per-process only. Use the Redis store when the API runs
        with multiple workers or replicas.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._counters: dict[str, _Counter] = {}

    def _live_counter_locked(self, key: str) -> _Counter | None:
        counter = self._counters.get(key)
        if counter is None:
            return None
        if counter.expires_at is not None and self._clock() >= counter.expires_at:
            del self._counters[key]
            return None
        return counter

    def _increment_locked(self, key: str) -> _Counter:
        counter = self._live_counter_locked(key)
        if counter is None:
            counter = _Counter(count=0, expires_at=None)
            self._counters[key] = counter
        counter.count += 1
        return counter

    async def get(self, key: str) -> int | None:
        with self._lock:
            counter = self._live_counter_locked(key)
            return counter.count if counter else None

    async def increment(self, key: str) -> int:
        with self._lock:
            return self._increment_locked(key).count

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            counter = self._live_counter_locked(key)
            if counter is None:
                return False
            counter.expires_at = self._clock() + ttl_seconds
            return True

    async def increment_with_expiry(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            counter = self._increment_locked(key)
            counter.expires_at = self._clock() + ttl_seconds
            return counter.count

    def keys(self) -> list[str]:
        """Return the keys of all live counters (inspection helper)."""
        with self._lock:
            return [key for key in list(self._counters) if self._live_counter_locked(key)]

    def clear(self) -> None:
        """Drop every counter."""
        with self._lock:
            self._counters.clear()
