"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
lifespan) so tests and the ASGI entrypoint build the same application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import chat_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import close_counter_store


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_counter_store()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Athena Chat API",
        description=(
            "Chatbot backend: forwards chat transcripts to a language model "
            "behind layered rate limits (per client per minute, global per "
            "minute, global per day) backed by a Redis counter store."
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Chat", "description": "Send a message and receive the bot's reply."},
            {"name": "Health", "description": "Liveness and readiness checks."},
        ],
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(chat_router, prefix="/api")
    app.include_router(health_router)

    return app
