"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, framework and unexpected) and return one JSON envelope with proper
HTTP status codes and traceability.

Design:
- AppError subclasses → mapped HTTP status (400, 403, 429, 500)
- Framework HTTP errors (404, 405, ...) → same envelope, original status
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
- Bodies also carry a fresh top-level ``id`` and ``errorResponse`` text
"""

import logging
import uuid
from typing import Any, Mapping

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.errors import (
    AppError,
    ClientIdentificationError,
    CounterStoreError,
    LLMAppError,
    RateLimitExceededError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Most specific first; unmapped AppError subclasses fall back to 400.
STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (ClientIdentificationError, 403),
    (RateLimitExceededError, 429),
    (CounterStoreError, 500),
    (LLMAppError, 500),
)

_HTTP_ERROR_CODES = {
    400: "bad_request",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
    415: "unsupported_media_type",
    429: "rate_limited",
}


def error_body(code: str, message: str, details: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build the failure body.

    The browser client reads the top-level ``id``, ``error`` and
    ``errorResponse``; ``error`` also carries the structured envelope.
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error["details"] = dict(details)
    return {"id": uuid.uuid4().hex, "error": error, "errorResponse": message}


def status_code_for(exc: AppError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _rate_limit_headers(exc: RateLimitExceededError) -> dict[str, str]:
    details = exc.details or {}
    headers: dict[str, str] = {}
    if "retry_after" in details:
        headers["Retry-After"] = str(details["retry_after"])
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
        headers["X-RateLimit-Remaining"] = "0"
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(details["reset_at"])
    if "scope" in details:
        headers["X-RateLimit-Scope"] = str(details["scope"])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request
    - ClientIdentificationError → 403 Forbidden
    - RateLimitExceededError → 429 Too Many Requests (+ Retry-After)
    - CounterStoreError, LLMAppError → 500 Internal Server Error

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = status_code_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    content = error_body(exc.code, exc.message, exc.details)

    headers: dict[str, str] | None = None
    if isinstance(exc, RateLimitExceededError) and settings.app.rate_limit_include_headers:
        headers = _rate_limit_headers(exc) or None

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (e.g. 405 Method Not Allowed) in the envelope."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    if exc.status_code == 405:
        message = "Invalid method, only POST is allowed."

    logger.info(
        "http_error_handled",
        extra={
            "status_code": exc.status_code,
            "error_code": code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic message.
    No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content=error_body(
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
