from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.rate_limit import get_counter_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe: the process is up and serving requests."""

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check() -> JSONResponse:
    """Readiness probe: the counter store answers a ping.

    Chat requests fail closed without the store, so an unreachable store
    makes the service not ready (503).
    """

    backend = settings.store.backend.lower()
    try:
        reachable = await get_counter_store().ping()
    except Exception as exc:
        logger.warning(
            "health.store_unreachable",
            extra={"backend": backend, "error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        reachable = False

    status_code = 200 if reachable else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok" if reachable else "unavailable",
            "checks": {"counter_store": {"backend": backend, "reachable": reachable}},
        },
    )
