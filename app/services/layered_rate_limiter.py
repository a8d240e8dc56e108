"""Layered rate limiter gating chat requests.

Every request passes three independent fixed-window counters, in order:

1. ``local``         - per client address, per minute
2. ``global-minute`` - all clients, per minute
3. ``global-day``    - all clients, per day

The first exhausted scope rejects the request and the remaining scopes are
not evaluated. A passing scope increments its counter and refreshes the TTL
in one atomic store batch.

Concurrency: the default mode reads the counter and increments it in two
separate store calls, so N requests racing at the boundary can all be
admitted (over-admission bounded by the number of racing requests). Strict
mode increments first and compares the returned count, which removes the
race but also counts rejected attempts.

The limiter holds no counter state; the store owns every counter.
"""

from __future__ import annotations

import hashlib
import ipaddress
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from app.adapters.rate_limit.base import AbstractCounterStore
from app.core.errors import (
    ClientIdentificationError,
    CounterStoreError,
    RateLimitExceededError,
)

logger = logging.getLogger(__name__)

MINUTE_SECONDS = 60
DAY_SECONDS = 86400

# Keys expire one second before their bucket ends.
MINUTE_TTL_SECONDS = 59
DAY_TTL_SECONDS = 86399


class RateLimitScope(str, Enum):
    LOCAL = "local"
    GLOBAL_MINUTE = "global-minute"
    GLOBAL_DAY = "global-day"


@dataclass(frozen=True)
class ScopeRule:
    """Static description of one rate limit layer."""

    scope: RateLimitScope
    limit: int
    window_seconds: int
    ttl_seconds: int
    error_code: str
    message: str


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a passing scope check.

    Attributes:
        scope: Scope that was checked.
        limit: Max requests per window for the scope.
        count: Counter value after this request was recorded.
        remaining: Requests left in the current window.
        reset_at: UNIX epoch seconds when the current bucket ends.
    """

    scope: RateLimitScope
    limit: int
    count: int
    remaining: int
    reset_at: int


def minute_bucket(now: float) -> int:
    """Return ``floor(now / 60)``."""
    return int(now // MINUTE_SECONDS)


def day_bucket(now: float) -> int:
    """Return ``floor(now / 86400)``."""
    return int(now // DAY_SECONDS)


def normalize_client_address(client_address: str | None) -> str | None:
    """Return the canonical form of an IP address, or None if unparseable."""
    if not client_address:
        return None
    try:
        return str(ipaddress.ip_address(client_address.strip()))
    except ValueError:
        return None


def hash_client_address(client_address: str) -> str:
    """Hash a client address for logging without exposing it."""
    return hashlib.sha256(client_address.encode()).hexdigest()[:16]


class LayeredRateLimiter:
    """Three-layer fixed-window limiter on top of an ``AbstractCounterStore``."""

    def __init__(
        self,
        store: AbstractCounterStore,
        *,
        local_limit: int = 10,
        global_minute_limit: int = 50,
        daily_limit: int = 100,
        strict: bool = False,
        key_prefix: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Counter backend.
            local_limit: Requests per client address per minute.
            global_minute_limit: Requests across all clients per minute.
            daily_limit: Requests across all clients per day.
            strict: Increment before comparing (no read/increment race).
            key_prefix: Namespace prepended to every counter key.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If any limit is lower than 1.
        """
        for name, value in (
            ("local_limit", local_limit),
            ("global_minute_limit", global_minute_limit),
            ("daily_limit", daily_limit),
        ):
            if value < 1:
                raise ValueError(f"{name} must be >= 1")

        self._store = store
        self._strict = strict
        self._key_prefix = key_prefix
        self._clock = clock
        self._rules = (
            ScopeRule(
                scope=RateLimitScope.LOCAL,
                limit=local_limit,
                window_seconds=MINUTE_SECONDS,
                ttl_seconds=MINUTE_TTL_SECONDS,
                error_code="rate_limit_local",
                message=f"Local IP-address based rate limit of {local_limit} requests/minute reached.",
            ),
            ScopeRule(
                scope=RateLimitScope.GLOBAL_MINUTE,
                limit=global_minute_limit,
                window_seconds=MINUTE_SECONDS,
                ttl_seconds=MINUTE_TTL_SECONDS,
                error_code="rate_limit_global_minute",
                message=f"Global rate limit of {global_minute_limit} requests/minute reached.",
            ),
            ScopeRule(
                scope=RateLimitScope.GLOBAL_DAY,
                limit=daily_limit,
                window_seconds=DAY_SECONDS,
                ttl_seconds=DAY_TTL_SECONDS,
                error_code="rate_limit_global_day",
                message=f"Global daily rate limit of {daily_limit} requests/day reached.",
            ),
        )

    @property
    def rules(self) -> tuple[ScopeRule, ...]:
        return self._rules

    @property
    def strict(self) -> bool:
        return self._strict

    def build_key(self, scope: RateLimitScope, now: float, client_address: str | None = None) -> str:
        """Build the counter key for a scope at a given time.

        Args:
            scope: Rate limit scope.
            now: UNIX time in seconds.
            client_address: Normalized client address (local scope only).

        Returns:
            Key such as ``local:1.2.3.4:28000000`` or ``global-day:19500``.
        """
        if scope is RateLimitScope.LOCAL:
            if not client_address:
                raise ValueError("client_address is required for the local scope")
            key = f"{scope.value}:{client_address}:{minute_bucket(now)}"
        elif scope is RateLimitScope.GLOBAL_MINUTE:
            key = f"{scope.value}:{minute_bucket(now)}"
        else:
            key = f"{scope.value}:{day_bucket(now)}"
        return f"{self._key_prefix}{key}"

    async def enforce(self, client_address: str | None) -> list[RateLimitResult]:
        """Run every scope check for one request.

        Args:
            client_address: Requester's network address, None if unresolved.

        Returns:
            One result per scope, in check order, when the request may proceed.

        Raises:
            ClientIdentificationError: Address missing or not a valid IP.
            RateLimitExceededError: A scope is exhausted (first failing scope).
            CounterStoreError: The store failed; later scopes are skipped.
        """
        address = normalize_client_address(client_address)
        if address is None:
            logger.warning(
                "rate_limit.client_unidentified",
                extra={"address_present": bool(client_address)},
            )
            raise ClientIdentificationError(
                code="client_address_undetected",
                message="Your IP address was not detected and your request could not be fulfilled.",
            )

        now = self._clock()
        address_hash = hash_client_address(address)
        results: list[RateLimitResult] = []

        for rule in self._rules:
            key = self.build_key(rule.scope, now, address)
            results.append(await self._check(rule, key, now, address_hash))

        return results

    async def _check(self, rule: ScopeRule, key: str, now: float, address_hash: str) -> RateLimitResult:
        reset_at = (int(now // rule.window_seconds) + 1) * rule.window_seconds

        try:
            if self._strict:
                count = await self._store.increment_with_expiry(key, rule.ttl_seconds)
                exceeded = count > rule.limit
            else:
                count = max(0, await self._store.get(key) or 0)
                exceeded = count >= rule.limit
                if not exceeded:
                    count = await self._store.increment_with_expiry(key, rule.ttl_seconds)
        except Exception as exc:
            logger.exception(
                "rate_limit.store_error",
                extra={
                    "scope": rule.scope.value,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "client_hash": address_hash,
                },
            )
            raise CounterStoreError(
                code="database_error",
                message="An error occurred when sending a request to the database.",
            ) from exc

        if exceeded:
            retry_after = max(0, int(math.ceil(reset_at - now)))
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "scope": rule.scope.value,
                    "limit": rule.limit,
                    "count": count,
                    "client_hash": address_hash,
                    "retry_after_s": retry_after,
                    "strict": self._strict,
                },
            )
            raise RateLimitExceededError(
                code=rule.error_code,
                message=rule.message,
                details={
                    "scope": rule.scope.value,
                    "limit": rule.limit,
                    "window": "day" if rule.window_seconds == DAY_SECONDS else "minute",
                    "retry_after": retry_after,
                    "reset_at": reset_at,
                },
            )

        logger.debug(
            "rate_limit.allowed",
            extra={
                "scope": rule.scope.value,
                "limit": rule.limit,
                "count": count,
                "client_hash": address_hash,
            },
        )
        return RateLimitResult(
            scope=rule.scope,
            limit=rule.limit,
            count=count,
            remaining=max(0, rule.limit - count),
            reset_at=reset_at,
        )
