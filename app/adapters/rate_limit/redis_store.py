"""Redis-backed counter store.

Counters are plain Redis integers. ``increment_with_expiry`` runs INCR and
EXPIRE inside one MULTI/EXEC transaction so a counter never exists without a
TTL.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from app.adapters.rate_limit.base import AbstractCounterStore

logger = logging.getLogger(__name__)


class RedisCounterStore(AbstractCounterStore):
    """Counter store on top of ``redis.asyncio``.

    Errors raised by the client (connection refused, timeouts, ...) propagate
    unchanged; the rate limiter decides how to surface them.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float | None = None) -> "RedisCounterStore":
        """Build a store from a ``redis://`` URL."""
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    async def get(self, key: str) -> int | None:
        value = await self._client.get(key)
        if value is None:
            return None
        return int(value)

    async def increment(self, key: str) -> int:
        return int(await self._client.incr(key))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._client.expire(key, ttl_seconds))

    async def increment_with_expiry(self, key: str, ttl_seconds: int) -> int:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds)
            count, _ = await pipe.execute()
        return int(count)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("counter_store.closed", extra={"backend": "redis"})
