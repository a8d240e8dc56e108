"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional so each error only carries what applies to it.
    """

    field: str
    scope: str
    limit: int
    window: str
    retry_after: int
    reset_at: int
    model: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when the inbound payload or configuration is invalid."""


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail."""


class ClientIdentificationError(AppError):
    """Raised when the requester's network address cannot be resolved."""


class RateLimitExceededError(AppError):
    """Raised when one of the rate limit scopes is exhausted.

    ``details`` always carries ``scope`` and ``limit`` so callers can back off.
    """

    @property
    def scope(self) -> str | None:
        return (self.details or {}).get("scope")


class CounterStoreError(AppError):
    """Raised when the rate limit counter backend fails."""
