"""Health check endpoints."""

from fastapi import APIRouter

from clinic_desk import __version__
from clinic_desk.core.database import ping_db

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "service": "clinic-desk",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check() -> dict:
    """Readiness check - verifies the database answers."""
    if not await ping_db():
        return {
            "status": "not_ready",
            "errors": ["Database unavailable"],
        }
    return {"status": "ready", "database": True}


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - basic process health."""
    return {"status": "alive"}
