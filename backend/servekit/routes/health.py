"""
Servekit — Health Check Route
=============================

What:  GET /health for Docker health checks and load balancer probes.
How:   Runs `SELECT 1` against the database. The service is healthy only if
       the database answers; otherwise the endpoint returns 503 so traffic is
       routed elsewhere.

This is a plain FastAPI route (not a MasterController): probes expect a
small flat body, not the response envelope.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from servekit import __version__
from servekit.database import engine
from servekit.routes.events import hub
from servekit.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        socket_connections=hub.connection_count,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
