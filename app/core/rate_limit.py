"""Rate limiting dependency for FastAPI routes.

This module wires the layered rate limiter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: the counter store is selected by configuration (Redis or
  in-memory) behind an abstract interface.
- Fail closed: an unidentified client or a store failure rejects the request.
"""

from __future__ import annotations

import logging

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.rate_limit.factory import create_counter_store
from app.core.client_address import resolve_client_address
from app.core.config import settings
from app.services.layered_rate_limiter import LayeredRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


_store: AbstractCounterStore | None = None
_limiter: LayeredRateLimiter | None = None
_limiter_config: tuple[int, int, int, bool, str] | None = None


def get_counter_store() -> AbstractCounterStore:
    """Return the process-wide counter store, creating it on first use."""

    global _store

    if _store is None:
        _store = create_counter_store()
        logger.info(
            "counter_store.created",
            extra={"backend": settings.store.backend.lower()},
        )
    return _store


async def close_counter_store() -> None:
    """Close and forget the process-wide counter store (app shutdown)."""

    global _store, _limiter, _limiter_config

    if _store is not None:
        await _store.close()
    _store = None
    _limiter = None
    _limiter_config = None


def get_rate_limiter() -> LayeredRateLimiter:
    """Return a process-wide layered rate limiter.

    If configuration changes (primarily in tests), the limiter is rebuilt.

    Returns:
        LayeredRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    config = (
        settings.app.local_rate_limit_per_minute,
        settings.app.global_rate_limit_per_minute,
        settings.app.global_daily_rate_limit,
        settings.app.rate_limit_strict,
        settings.app.rate_limit_key_prefix,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = LayeredRateLimiter(
            get_counter_store(),
            local_limit=settings.app.local_rate_limit_per_minute,
            global_minute_limit=settings.app.global_rate_limit_per_minute,
            daily_limit=settings.app.global_daily_rate_limit,
            strict=settings.app.rate_limit_strict,
            key_prefix=settings.app.rate_limit_key_prefix,
        )
        _limiter_config = config

    return _limiter


def _tightest(results: list[RateLimitResult]) -> RateLimitResult:
    return min(results, key=lambda r: (r.remaining, r.reset_at))


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """FastAPI dependency enforcing the layered rate limits.

    Resolves the client address and records one request in every scope.
    Rejections propagate as AppError subclasses and are rendered by the
    global exception handlers (403, 429 or 500).

    Args:
        request: FastAPI request.
        response: Response whose headers receive the X-RateLimit-* values.
    """

    if not settings.app.rate_limit_enabled:
        return

    client_address = resolve_client_address(
        request,
        trust_forwarded_headers=settings.app.trust_forwarded_headers,
    )
    results = await get_rate_limiter().enforce(client_address)

    if settings.app.rate_limit_include_headers and results:
        tightest = _tightest(results)
        response.headers["X-RateLimit-Scope"] = tightest.scope.value
        response.headers["X-RateLimit-Limit"] = str(tightest.limit)
        response.headers["X-RateLimit-Remaining"] = str(tightest.remaining)
        response.headers["X-RateLimit-Reset"] = str(tightest.reset_at)
