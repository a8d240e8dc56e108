"""Factory for counter store instances."""

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore
from app.core.config import settings
from app.core.errors import ValidationAppError


def create_counter_store() -> AbstractCounterStore:
    """Instantiate the counter store selected by STORE_BACKEND.

    Returns:
        AbstractCounterStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    backend = settings.store.backend.lower()

    if backend == "redis":
        if not settings.store.redis_url:
            raise ValidationAppError(
                code="store_missing_redis_url",
                message="Redis counter store requires STORE_REDIS_URL environment variable",
            )
        return RedisCounterStore.from_url(
            settings.store.redis_url,
            socket_timeout=settings.store.socket_timeout_seconds,
        )

    if backend == "memory":
        return InMemoryCounterStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=(
            f"Unknown counter store backend: '{backend}'. Supported backends: redis, memory"
        ),
    )
