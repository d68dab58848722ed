"""
API data models for the property listings service.

This module contains Pydantic models for request and response data structures.
These models define the structure of incoming requests, outgoing responses and
the cached page payloads.
"""
import math
from enum import Enum
from typing import Dict, List, Optional, Any

from pydantic import BaseModel, ConfigDict, Field


class QueryContext(str, Enum):
    """
    Breadth of the joins performed for a property query.

    LISTING joins photos only, SEARCH and DETAIL also join appraisal summaries.
    """
    LISTING = "listing"
    SEARCH = "search"
    DETAIL = "detail"

    @property
    def include_photos(self) -> bool:
        return CONTEXT_JOINS[self][0]

    @property
    def include_appraisals(self) -> bool:
        return CONTEXT_JOINS[self][1]


# (include_photos, include_appraisals) per context
CONTEXT_JOINS = {
    QueryContext.LISTING: (True, False),
    QueryContext.SEARCH: (True, True),
    QueryContext.DETAIL: (True, True),
}


class PropertyFilter(BaseModel):
    """
    Optional constraints narrowing which listings a search returns.

    Every field is optional and an absent field means no constraint. A range whose
    minimum exceeds its maximum is legal and simply matches nothing.

    Attributes:
        city: Exact city name
        compound: Exact compound name
        property_type: Exact property type (apartment, villa, ...)
        min_bedrooms: Lower bound on bedrooms, inclusive
        max_bedrooms: Upper bound on bedrooms, inclusive
        min_price: Lower bound on price, inclusive
        max_price: Upper bound on price, inclusive
        exclude_id: Identity of a listing to leave out of the results
        has_virtual_tour: When true, only listings with a virtual tour
    """
    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    compound: Optional[str] = None
    property_type: Optional[str] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    exclude_id: Optional[str] = None
    has_virtual_tour: Optional[bool] = None

    def canonical(self) -> Dict[str, Any]:
        """
        Return only the constraints that actually narrow the search, keyed by field name.

        Two filters with the same canonical form compile to the same predicates.
        """
        data = self.model_dump(exclude_none=True)
        # 3000000 and 3000000.0 are the same bound
        for name in ("min_price", "max_price"):
            if name in data:
                data[name] = float(data[name])
        # has_virtual_tour=false leaves tour presence unconstrained, same as absent
        if data.get("has_virtual_tour") is not True:
            data.pop("has_virtual_tour", None)
        return data


class PaginationRequest(BaseModel):
    """
    A normalized page request.

    Attributes:
        page: 1-based page number
        limit: Page size, already clamped to the configured ceiling
    """
    model_config = ConfigDict(frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PropertyPhoto(BaseModel):
    """A single photo attached to a listing."""
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    url: str
    is_primary: bool = False
    order_index: Optional[int] = None


class AppraisalSummary(BaseModel):
    """
    Summary of the latest appraisal for a listing.

    Attributes:
        id: Appraisal identifier
        status: Workflow status of the appraisal
        market_value_estimate: Estimated market value
        unit_area_sqm: Appraised unit area in square meters
        price_per_sqm: Appraised price per square meter
        appraisal_date: When the appraisal was created
    """
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    status: Optional[str] = None
    market_value_estimate: Optional[float] = None
    unit_area_sqm: Optional[float] = None
    price_per_sqm: Optional[float] = None
    appraisal_date: Optional[str] = None


class PropertyListing(BaseModel):
    """
    Read projection of a stored property plus its photos and appraisal summary.

    Columns not modelled here are kept as extra fields so the projection stays
    faithful to the stored row.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: str
    title: Optional[str] = None
    price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    square_meters: Optional[float] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    compound: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    virtual_tour_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    photos: List[PropertyPhoto] = Field(default_factory=list)
    appraisal: Optional[AppraisalSummary] = None


class PerformanceInfo(BaseModel):
    """
    Timing and cache metadata attached to a page.

    Attributes:
        queryTime: Milliseconds spent computing the page against the datastore
        resultCount: Number of items in the page
        cacheHit: Whether the page was served from cache
        cachedAt: ISO timestamp of when the page was computed
    """
    queryTime: float = 0.0
    resultCount: int = 0
    cacheHit: bool = False
    cachedAt: Optional[str] = None


class PropertyPage(BaseModel):
    """
    One page of search results.

    Attributes:
        items: Listings on this page, never more than ``limit``
        page: 1-based page number
        limit: Effective page size
        total: Number of listings matching the filter across all pages
        totalPages: ceil(total / limit)
        performance: Timing and cache metadata
    """
    items: List[PropertyListing] = Field(default_factory=list)
    page: int
    limit: int
    total: int
    totalPages: int
    performance: PerformanceInfo = Field(default_factory=PerformanceInfo)

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0


class FeaturedProperties(BaseModel):
    """Newest public listings shown on the landing page."""
    items: List[PropertyListing] = Field(default_factory=list)
    performance: PerformanceInfo = Field(default_factory=PerformanceInfo)


class PropertyStats(BaseModel):
    """Aggregate counts for the listings dashboard."""
    model_config = ConfigDict(extra="allow")

    total_properties: int = 0
    active_properties: int = 0
    pending_properties: int = 0
    avg_price: float = 0.0
    performance: PerformanceInfo = Field(default_factory=PerformanceInfo)


class PropertyWrite(BaseModel):
    """
    Body of a create or update request.

    Only the columns supplied by the caller are written.
    """
    model_config = ConfigDict(extra="allow")

    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    bathrooms: Optional[int] = Field(default=None, ge=0)
    square_meters: Optional[float] = Field(default=None, ge=0)
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    compound: Optional[str] = None
    property_type: Optional[str] = None
    status: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    virtual_tour_url: Optional[str] = None


class CacheClearType(str, Enum):
    """Scope of an administrative cache clear."""
    PROPERTY = "property"
    ALL = "all"


class CacheClearRequest(BaseModel):
    """
    Body of the administrative cache-clear request.

    Attributes:
        type: "property" clears one property's entries, anything else clears search results
        propertyId: Required when type is "property"
    """
    type: Optional[CacheClearType] = None
    propertyId: Optional[str] = None


class CacheClearResponse(BaseModel):
    """Result of an administrative cache clear."""
    success: bool
    message: str
    keysDeleted: int = 0


class CacheHealthResponse(BaseModel):
    """Result of the cache health probe."""
    status: str
    backend: str
    latency_ms: Optional[float] = None
    error: Optional[str] = None


class ErrorResponse(BaseModel):
    """
    Model for API error responses.

    Attributes:
        error: Human-readable error message
        details: Diagnostic detail (optional)
    """
    error: str
    details: Optional[str] = None
