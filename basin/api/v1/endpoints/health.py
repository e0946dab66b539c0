"""Health check endpoints for liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from basin.core.config import get_settings
from basin.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    return HealthResponse(version=get_settings().app_version)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Database unreachable", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the catalog database answers; 503 otherwise.

    With no DATABASE_URL configured there is nothing to check and the
    service reports ready. The cache state is informational: permission
    resolution falls back to the database when Redis is down.
    """
    cache = getattr(request.app.state, "cache", None)
    cache_state = "connected" if cache is not None and cache.is_available() else "disabled"
    if not get_settings().database_url:
        return ReadinessResponse(database="not_configured", cache=cache_state)

    from basin.infrastructure.persistence.database import get_session_factory

    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Readiness check failed", exc_info=True)
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message="Database unreachable").model_dump(),
        )
    return ReadinessResponse(database="ok", cache=cache_state)
