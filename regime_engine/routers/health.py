"""
Regime Island - Health Check Router
Provides API health status endpoint.
"""

from fastapi import APIRouter
from datetime import datetime, timezone

from regime_engine.config import get_settings

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """
    Health check for the API.

    Returns:
        - API status
        - Current timestamp
        - Environment info
    """
    return {
        "status": "ok",
        "service": "regime-island-api",
        "version": settings.app_version,
        "environment": settings.app_env,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
