"""Liveness endpoint."""

from fastapi import APIRouter

from trainarchive.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Report the service identity and the configured backends."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "storage_backend": settings.STORAGE_BACKEND,
        "metadata_backend": settings.METADATA_BACKEND,
    }
