"""
Breviago Backend — Health Check Route
======================================

What:  Liveness/readiness probe for orchestrators and load balancers.
How:   Runs `SELECT 1` against the database and asks the authorization
       backend for its health.

Status levels:
    healthy    — database and authorization backend both available (200)
    degraded   — authorization backend down or its circuit open (200)
    unhealthy  — database unreachable (503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from breviago import __version__
from breviago.database import engine
from breviago.services.authorization import authorization_service
from breviago.services.authz_base import AVAILABLE, UNAVAILABLE
from breviago.exceptions import BreviagoError
from breviago.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", type(e).__name__)

    try:
        authz_status = await authorization_service.health_check()
    except BreviagoError as e:
        authz_status = UNAVAILABLE
        logger.warning("Health check: authorization backend error: %s", e.message)

    if authz_status != AVAILABLE and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        authorization=authz_status,
        authz_backend=authorization_service.backend,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
