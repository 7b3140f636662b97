"""
MarkNotes Backend - Health Check Route
========================================

What:  GET /api/health for monitoring and load balancer probes.
How:   Reports that the API process is serving requests, plus a lightweight
       database ping (SELECT 1). The response is always HTTP 200 with
       status "OK"; the `database` field flags a disconnected store.
"""

import logging

from fastapi import APIRouter, Request

from marknotes.models.note import utc_now
from marknotes.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="Service health check",
)
async def health_check(request: Request) -> HealthResponse:
    database = request.app.state.database
    connected = await database.ping()
    if not connected:
        logger.warning("Health check: database unreachable")

    return HealthResponse(
        status="OK",
        message="Notes API is running",
        timestamp=utc_now(),
        environment=request.app.state.settings.environment,
        database="connected" if connected else "disconnected",
    )
