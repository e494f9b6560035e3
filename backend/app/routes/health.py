"""
Agora Backend: Health Check Route
==================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Load balancers route away from instances that cannot serve requests.
How:   Probes both stores the service writes to and returns an aggregate status.

Status levels:
    - healthy:   Database reachable and upload volume writable (HTTP 200)
    - degraded:  Upload volume unavailable; reads and deletes of rows still work
    - unhealthy: Database unreachable (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import __version__
from app.dependencies import get_file_service, get_session_factory
from app.schemas.common import HealthResponse
from app.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
    description=(
        "Returns the health status of the backend service and its dependencies. "
        "Used by Docker health checks and load balancers to determine if the service "
        "can handle traffic."
    ),
)
async def health_check(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    files: FileService = Depends(get_file_service),
):
    """
    Check database connectivity (SELECT 1) and that the upload root is a
    writable directory. Both checks are cheap enough to run every few seconds.
    """
    db_status = "connected"
    storage_status = "writable"
    overall = "healthy"

    # ── Check Database ────────────────────────────────────────────────────
    try:
        async with session_factory() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Check Upload Volume ───────────────────────────────────────────────
    root = files.resolver.root
    if not (root.is_dir() and os.access(root, os.W_OK)):
        storage_status = "unavailable"
        overall = "degraded" if overall != "unhealthy" else overall
        logger.warning("Health check: upload root %s is not writable", root)

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
