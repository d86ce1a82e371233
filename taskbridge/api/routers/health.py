"""Liveness and readiness probes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskbridge import __version__
from taskbridge.api.dependencies import get_db, get_redis_manager
from taskbridge.api.schemas.common import HealthResponse, ServiceStatus
from taskbridge.cache.client import RedisManager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _database_status(db: AsyncSession) -> ServiceStatus:
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning(f"readiness_check: database=error, error={e}")
        return ServiceStatus(status="error", error=str(e))
    return ServiceStatus(status="connected")


async def _redis_status(redis_manager: RedisManager) -> ServiceStatus:
    health = await redis_manager.health_check()
    label = "connected" if health["status"] == "ok" else health["status"]
    return ServiceStatus(status=label, latency_ms=health["latency_ms"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness only; never touches the database or Redis."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    redis_manager: Optional[RedisManager] = Depends(get_redis_manager),
) -> HealthResponse:
    """Ready when the database answers.

    Redis is reported but optional: without it notifications skip rate
    limiting rather than fail.

    Raises:
        HTTPException: 503 when the database check fails.
    """
    services = {"database": await _database_status(db)}
    if redis_manager is not None:
        services["redis"] = await _redis_status(redis_manager)

    if services["database"].status != "connected":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service unavailable",
        )
    return HealthResponse(status="ok", version=__version__, services=services)
