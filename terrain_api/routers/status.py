"""
Status Router for Health Checks

Liveness endpoint for deployment checks. Reports whether the result cache is
configured; the service works without it.
"""

from datetime import datetime
from fastapi import APIRouter
import logging

from terrain_api.services.database import get_cache_collection

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/status/health")
async def health_check():
    """
    Report service health.

    Returns:
        dict: Health status, cache availability and the current timestamp.
    """
    return {
        "status": "healthy",
        "cache_enabled": get_cache_collection() is not None,
        "timestamp": datetime.now().isoformat()
    }
