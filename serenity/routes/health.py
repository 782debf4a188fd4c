"""
Serenity Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and asks the cache manager for its
       state, then folds both into one status.

Status levels:
    - healthy:   database connected, cache available or disabled
    - degraded:  cache unavailable or its circuit is open (requests still served)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from serenity import __version__
from serenity.database import engine
from serenity.schemas.common import HealthResponse
from serenity.services.cache_manager import cache_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies. "
        "Used by container health checks and load balancers."
    ),
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Cache ─────────────────────────────────────────────────────────────
    cache_status = await cache_manager.health_check()
    if cache_status in ("unavailable", "circuit_open") and overall != "unhealthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        cache=cache_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
