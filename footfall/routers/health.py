"""
Health check endpoints.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from sqlalchemy import text

from footfall.core.config import settings
from footfall.core.database import DbSession

router = APIRouter(tags=["health"])


@router.get("/")
async def root() -> dict:
    """API root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@router.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
    }


@router.get("/health/ready")
async def readiness_check(request: Request, session: DbSession) -> dict:
    """
    Readiness probe - checks if the service can accept events.
    Verifies database connectivity and reports the ingestion settings in use.
    """
    try:
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    config = request.app.state.ingestion_config
    is_ready = db_status == "connected"

    return {
        "status": "ready" if is_ready else "not_ready",
        "checks": {
            "database": db_status,
            "heatmap": "enabled" if config.heatmap_enabled else "disabled",
            "warehouse": "configured" if settings.warehouse_configured else "not_configured",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/live")
async def liveness_check() -> dict:
    """
    Liveness probe - checks if the service is alive.
    Simple check that doesn't verify dependencies.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
