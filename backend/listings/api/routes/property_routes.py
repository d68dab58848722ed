"""
Property API routes for the property listings service.

This module contains route definitions for listing search, single-listing
detail, similar and featured listings, statistics, and listing mutations.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from ...core.config import settings
from ...core.errors import PropertyServiceError
from ...core.rate_limit import limiter
from ...services.filter_compiler import normalize_pagination
from ...services.property_admin import PropertyAdminService
from ...services.property_service import PropertyService
from ..dependencies import get_property_admin, get_property_service
from ..models import (
    ErrorResponse,
    FeaturedProperties,
    PropertyFilter,
    PropertyListing,
    PropertyPage,
    PropertyStats,
    PropertyWrite,
    QueryContext,
)

# Create router
router = APIRouter(
    prefix=f"{settings.API_PREFIX}/properties",
    tags=["properties"],
    responses={404: {"description": "Not found"}},
)

# Set up logging
logger = logging.getLogger(__name__)


@router.get("", response_model=PropertyPage, responses={500: {"model": ErrorResponse}})
@limiter.limit(settings.SEARCH_RATE_LIMIT)
async def search_properties(
    request: Request,
    page: Optional[int] = Query(default=None, description="1-based page number"),
    limit: Optional[int] = Query(default=None, description="Page size, clamped to the maximum"),
    city: Optional[str] = None,
    compound: Optional[str] = None,
    property_type: Optional[str] = None,
    min_bedrooms: Optional[int] = None,
    max_bedrooms: Optional[int] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    exclude: Optional[str] = Query(default=None, description="Listing id to leave out"),
    has_virtual_tour: Optional[bool] = None,
    context: QueryContext = QueryContext.LISTING,
    service: PropertyService = Depends(get_property_service),
) -> Any:
    """
    Search public listings.

    Args:
        request: The incoming request (used for rate limiting)
        page: Requested page
        limit: Requested page size
        city, compound, property_type: Exact-match filters
        min_bedrooms, max_bedrooms, min_price, max_price: Inclusive ranges
        exclude: Listing id to exclude
        has_virtual_tour: Only listings with a virtual tour when true
        context: Join breadth (listing, search or detail)
        service: Property query service

    Returns:
        PropertyPage: The requested page, or a 500 error body if the datastore fails
    """
    pagination = normalize_pagination(page, limit, settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    property_filter = PropertyFilter(
        city=city,
        compound=compound,
        property_type=property_type,
        min_bedrooms=min_bedrooms,
        max_bedrooms=max_bedrooms,
        min_price=min_price,
        max_price=max_price,
        exclude_id=exclude,
        has_virtual_tour=has_virtual_tour,
    )
    logger.info(f"Property search: filter={property_filter.canonical()} page={pagination.page} limit={pagination.limit}")

    try:
        return await service.get_properties(property_filter, context, pagination)
    except PropertyServiceError as e:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Failed to fetch properties", details=e.message).model_dump(),
        )


@router.get("/featured", response_model=FeaturedProperties)
async def featured_properties(
    limit: int = Query(default=6),
    service: PropertyService = Depends(get_property_service),
) -> FeaturedProperties:
    """
    Get the newest public listings for the landing page.

    Args:
        limit: Number of listings, clamped like any page size
        service: Property query service

    Returns:
        FeaturedProperties: Newest listings with photos
    """
    return await service.get_featured_properties(limit)


@router.get("/stats", response_model=PropertyStats)
async def property_stats(
    service: PropertyService = Depends(get_property_service),
) -> PropertyStats:
    """Get listing totals and the average price."""
    return await service.get_property_stats()


@router.get("/{property_id}", response_model=PropertyListing)
async def get_property(
    property_id: str,
    service: PropertyService = Depends(get_property_service),
) -> PropertyListing:
    """
    Get a single listing with its photos and latest appraisal.

    Args:
        property_id: Identity of the listing
        service: Property query service

    Returns:
        PropertyListing: The listing, or a 404 error body if it does not exist
    """
    return await service.get_property(property_id)


@router.get("/{property_id}/similar", response_model=PropertyPage)
async def similar_properties(
    property_id: str,
    limit: int = Query(default=8),
    service: PropertyService = Depends(get_property_service),
) -> PropertyPage:
    """
    Get listings similar to a given one.

    Same city and type, priced within 30% either side, excluding the listing itself.
    """
    return await service.get_similar_properties(property_id, limit)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_property(
    body: PropertyWrite,
    admin: PropertyAdminService = Depends(get_property_admin),
) -> Dict[str, Any]:
    """
    Create a listing and purge cached searches and aggregates.

    Args:
        body: Columns of the new listing
        admin: Property write service

    Returns:
        Dict[str, Any]: The stored row
    """
    return await admin.create_property(body.model_dump(exclude_unset=True))


@router.put("/{property_id}")
async def update_property(
    property_id: str,
    body: PropertyWrite,
    admin: PropertyAdminService = Depends(get_property_admin),
) -> Dict[str, Any]:
    """
    Update the supplied columns of a listing.

    Args:
        property_id: Identity of the listing
        body: Columns to change; an empty body is a 400
        admin: Property write service

    Returns:
        Dict[str, Any]: The stored row after the update
    """
    return await admin.update_property(property_id, body.model_dump(exclude_unset=True))


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    admin: PropertyAdminService = Depends(get_property_admin),
) -> Dict[str, Any]:
    """Delete a listing; an unknown id is a 404."""
    await admin.delete_property(property_id)
    return {"message": "Property deleted successfully", "id": property_id}
