"""
Administrative cache routes.

Clear cached property results on demand and probe the cache store's health.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ...core.config import settings
from ...services.cache_invalidation import CacheInvalidator
from ...services.cache_store import CacheStore
from ..dependencies import get_cache_invalidator, get_cache_store
from ..models import CacheClearRequest, CacheClearResponse, CacheClearType, CacheHealthResponse

router = APIRouter(prefix=f"{settings.API_PREFIX}/cache", tags=["cache"])

logger = logging.getLogger(__name__)


@router.post("/clear", response_model=CacheClearResponse)
async def clear_cache(
    body: CacheClearRequest,
    invalidator: CacheInvalidator = Depends(get_cache_invalidator),
) -> CacheClearResponse:
    """
    Clear one property's cached detail, or every cached search and aggregate.

    Args:
        body: ``{"type": "property", "propertyId": ...}`` for one property, anything else for all
        invalidator: Cache invalidation trigger

    Returns:
        CacheClearResponse: What was cleared

    Raises:
        HTTPException: 400 if type is "property" without a propertyId
    """
    if body.type is CacheClearType.PROPERTY:
        if not body.propertyId:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="propertyId is required")
        deleted = await invalidator.clear_property(body.propertyId)
        return CacheClearResponse(
            success=True,
            message=f"Cache cleared for property {body.propertyId}",
            keysDeleted=deleted,
        )

    deleted = await invalidator.clear_all()
    return CacheClearResponse(success=True, message="All property caches cleared", keysDeleted=deleted)


@router.get("/health", response_model=CacheHealthResponse)
async def cache_health(cache: CacheStore = Depends(get_cache_store)) -> CacheHealthResponse:
    """
    Probe the cache store.

    Returns:
        CacheHealthResponse: Status, backend name and round-trip latency
    """
    result = await cache.ping()
    if result.get("status") == "unhealthy":
        logger.warning(f"Cache health check failed: {result.get('error')}")
    return CacheHealthResponse(
        status=result["status"],
        backend=result["backend"],
        latency_ms=result.get("latency_ms"),
        error=result.get("error"),
    )
