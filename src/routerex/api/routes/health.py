"""Health check endpoints."""

from fastapi import APIRouter

from routerex.config import get_settings
from routerex.web.dependencies import get_services

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "routerex"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with configuration and provider info."""
    settings = get_settings()
    registry = get_services().registry
    return {
        "status": "healthy",
        "service": "routerex",
        "version": "0.1.0",
        "config": settings.get_safe_dict(),
        "providers": [
            {"id": e.name, "enabled": e.enabled, "priority": e.priority, "timeout": e.timeout}
            for e in registry.all_providers()
        ],
    }
