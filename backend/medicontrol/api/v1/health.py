"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter

from medicontrol import __version__
from medicontrol.core.config import get_settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck() -> dict[str, str]:
    """Used by sync clients as their connectivity check."""
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
    }
