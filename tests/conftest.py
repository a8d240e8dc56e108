"""Pytest configuration and fixtures shared across all test modules.

Environment variables must be set before any import that builds settings,
so they are assigned at module import time.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402

from app.adapters.rate_limit.in_memory import InMemoryCounterStore  # noqa: E402

# Start of a minute bucket (1_699_999_980 / 60 == 28_333_333)
BUCKET_START = 1_699_999_980.0


@pytest.fixture
def clock() -> Mock:
    """Controllable UNIX clock shared by store and limiter."""
    return Mock(return_value=BUCKET_START)


@pytest.fixture
def store(clock: Mock) -> InMemoryCounterStore:
    return InMemoryCounterStore(clock=clock)
