"""Counter store adapters for rate limiting.

Redis is the shared store for multi-worker deployments; the in-memory store
backs tests and single-process development. Both sit behind the same
interface so the limiter never depends on a concrete backend.
"""

from app.adapters.rate_limit.base import AbstractCounterStore
from app.adapters.rate_limit.factory import create_counter_store
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "RedisCounterStore",
    "create_counter_store",
]
