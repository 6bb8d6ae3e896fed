"""
Health check and monitoring endpoints.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from audit_api.config import Settings, get_app_settings
from audit_api.database import Database, get_db
from audit_api.errors import NotFound
from audit_api.models import HealthStatus

router = APIRouter(tags=["monitoring"])

# Track application start time
START_TIME = time.time()


@router.get("/health", response_model=HealthStatus)
async def health_check(
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    Health check endpoint.

    Returns the overall health status of the service including
    database connectivity, uptime and version.
    """
    db_healthy = await db.health_check()

    return HealthStatus(
        status="healthy" if db_healthy else "unhealthy",
        version=settings.app_version,
        database="connected" if db_healthy else "disconnected",
        uptime_seconds=time.time() - START_TIME,
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment
    )


@router.get("/health/live")
async def liveness_check():
    """Liveness check. Does not check dependencies."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: Database = Depends(get_db)):
    """
    Readiness check.

    Reports 503 until the event store is reachable.
    """
    db_healthy = await db.health_check()

    if not db_healthy:
        return Response(
            content='{"status": "not ready", "reason": "database disconnected"}',
            status_code=503,
            media_type="application/json"
        )

    return {"status": "ready"}


@router.get("/metrics")
async def metrics(settings: Settings = Depends(get_app_settings)):
    """Prometheus metrics in text exposition format."""
    if not settings.enable_metrics:
        raise NotFound("Metrics are disabled")

    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get("/info")
async def info(settings: Settings = Depends(get_app_settings)):
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "uptime_seconds": time.time() - START_TIME
    }
