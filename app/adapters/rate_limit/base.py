"""Counter store interfaces.

The rate limiter depends on this abstraction (not the concrete backend) so
Redis and the in-memory store are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractCounterStore(ABC):
    """Key-value store holding expiring integer counters."""

    @abstractmethod
    async def get(self, key: str) -> int | None:
        """Return the current count for key, or None when absent/expired."""
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Increment key by one (creating it at 1) and return the new count."""
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set (or refresh) the time-to-live of key.

        Returns:
            True if the key exists and the TTL was applied.
        """
        raise NotImplementedError

    @abstractmethod
    async def increment_with_expiry(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment key and refresh its TTL in a single batch.

        Args:
            key: Counter key.
            ttl_seconds: Time-to-live applied after the increment.

        Returns:
            The count after the increment.
        """
        raise NotImplementedError

    async def ping(self) -> bool:
        """Check backend reachability."""
        return True

    async def close(self) -> None:
        """Release backend resources (connections, pools)."""
        return None
