"""
Health check - liveness for load balancers and monitoring.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from garage.config import get_settings

router = APIRouter()
settings = get_settings()


@router.get("")
async def health():
    """Liveness: is the process up?"""
    return {
        "status": "ok",
        "app": settings.app_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
