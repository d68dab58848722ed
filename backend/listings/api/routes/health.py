"""
Health check routes for the application.

This module provides endpoints for monitoring the application's health and status.
"""
from typing import Dict, Any
from fastapi import APIRouter, Depends

from ..dependencies import get_cache_store
from ...core.config import settings
from ...services.cache_store import CacheStore

router = APIRouter()


@router.get(f"{settings.API_PREFIX}/health")
async def health_check(cache: CacheStore = Depends(get_cache_store)) -> Dict[str, Any]:
    """
    Health check endpoint that verifies the application's status.

    The service stays healthy when the cache is down, since the cache is only
    an optimization; its state is reported alongside.

    Args:
        cache: Cache store dependency

    Returns:
        Dict[str, Any]: Health status information including cache status
    """
    cache_status = await cache.ping()

    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT.value,
        "cache": {
            "backend": cache_status["backend"],
            "status": cache_status["status"],
        },
    }
