"""Health check and service info endpoints."""

from fastapi import APIRouter

from furlink.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    """Return API health status."""
    return {"status": "ok"}


@router.get("/")
def service_info() -> dict:
    """Name, version and deployment target of this instance."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "platform": settings.deploy_platform,
        "base_url": settings.base_url,
    }
