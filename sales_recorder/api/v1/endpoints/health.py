"""
Health check endpoints
"""
import logging
import datetime
from typing import Dict, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from sales_recorder.api.dependencies import get_settings
from sales_recorder.core.database import get_session_factory, health_check as database_health_check

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check(app_settings=Depends(get_settings)) -> Dict[str, Any]:
    """
    Basic health check endpoint.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.datetime.utcnow().isoformat(),
        "service": app_settings.PROJECT_NAME,
        "version": app_settings.PROJECT_VERSION,
        "openai_configured": app_settings.openai_configured,
        "twilio_configured": app_settings.twilio_configured,
    }


@router.get("/detailed")
async def detailed_health_check(
    app_settings=Depends(get_settings),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> Dict[str, Any]:
    """
    Detailed health check with dependencies.
    """
    checks = {
        "api_service": {
            "status": "healthy",
            "timestamp": datetime.datetime.utcnow().isoformat()
        },
        "database": await database_health_check(session_factory),
        "openai": {"configured": app_settings.openai_configured},
        "twilio": {"configured": app_settings.twilio_configured},
    }

    overall = "healthy" if checks["database"]["status"] == "healthy" else "degraded"
    if overall != "healthy":
        logger.warning(f"Detailed health check degraded: {checks['database']}")

    return {
        "status": overall,
        "timestamp": datetime.datetime.utcnow().isoformat(),
        "checks": checks,
    }
