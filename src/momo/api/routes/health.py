"""Health and monitor status endpoints."""

from fastapi import APIRouter, Request

from momo import __version__
from momo.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "momo"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with configuration info."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "momo",
        "version": __version__,
        "config": settings.get_safe_dict(),
    }


@router.get("/monitor")
async def monitor_status(request: Request):
    """Transfer monitor counters, or enabled=false when it is not running here."""
    monitor = request.app.state.monitor
    if monitor is None:
        return {"enabled": False}
    return {"enabled": True, **monitor.status()}
