"""
Property query service.

This module orchestrates property reads: cache lookup, filter compilation,
datastore fetch, photo and appraisal enrichment, and cache population.

The cache is strictly an optimization. A failed or corrupt cache read is handled
as a miss and a failed write is ignored; datastore failures propagate as
PropertyServiceError.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..api.models import (
    AppraisalSummary,
    FeaturedProperties,
    PaginationRequest,
    PerformanceInfo,
    PropertyFilter,
    PropertyListing,
    PropertyPage,
    PropertyStats,
    QueryContext,
)
from ..core.errors import DatastoreError, PropertyNotFoundError, PropertyServiceError
from .cache_policy import CacheCategory, CachePolicy
from .cache_store import CacheStatus, CacheStore
from .filter_compiler import compile_search, normalize_pagination, status_predicate
from .property_store import PropertyStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Similar listings are priced within this band around the reference listing
SIMILAR_PRICE_BAND = (0.7, 1.3)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


def _sort_photos(photos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Photos without an order_index go last, keeping their relative order
    return sorted(
        photos,
        key=lambda photo: (photo.get("order_index") is None, photo.get("order_index") or 0),
    )


def summarize_appraisal(appraisals: List[Dict[str, Any]]) -> Optional[AppraisalSummary]:
    """
    Summarize the latest appraisal of a listing.

    Values come from the appraisal's calculation results when present and fall
    back to the columns of the appraisal row itself.

    Args:
        appraisals: Appraisal rows for one listing, in any order

    Returns:
        Optional[AppraisalSummary]: Summary of the newest appraisal, None if there is none
    """
    if not appraisals:
        return None

    latest = max(appraisals, key=lambda a: a.get("created_at") or "")
    results = latest.get("calculation_results") or {}

    return AppraisalSummary(
        id=latest["id"],
        status=latest.get("status"),
        market_value_estimate=(
            results.get("market_value_estimate")
            or results.get("final_reconciled_value")
            or latest.get("market_value_estimate")
        ),
        unit_area_sqm=results.get("unit_area_sqm"),
        price_per_sqm=results.get("price_per_sqm"),
        appraisal_date=latest.get("created_at"),
    )


class PropertyService:
    """
    Read path for property listings.

    Attributes:
        store: Listings datastore
        cache: Cache store for computed pages
        policy: Cache key and TTL policy
        default_page_size: Page size used when the caller gives none
        max_page_size: Ceiling on any page size
        public_status: Status every general search is pinned to
    """

    def __init__(
        self,
        store: PropertyStore,
        cache: CacheStore,
        policy: CachePolicy,
        default_page_size: int = 20,
        max_page_size: int = 50,
        public_status: str = "available"
    ) -> None:
        self.store = store
        self.cache = cache
        self.policy = policy
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.public_status = public_status

    async def _read_cache(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        result = await self.cache.get(key)

        if result.status is CacheStatus.UNAVAILABLE:
            logger.warning(f"Cache unavailable for {key}, reading from datastore: {result.error}")
            return None
        if result.status is CacheStatus.MISS:
            logger.debug(f"Cache miss: {key}")
            return None

        try:
            value = model.model_validate_json(result.payload)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None
        logger.debug(f"Cache hit: {key}")
        return value

    async def _write_cache(self, key: str, value: BaseModel, category: CacheCategory) -> None:
        stored = await self.cache.set(key, value.model_dump_json(), self.policy.ttl_for(category))
        if not stored:
            logger.debug(f"Result for {key} was not cached")

    @staticmethod
    def _mark_cached(value: ModelT) -> ModelT:
        performance = value.performance.model_copy(update={"cacheHit": True})
        return value.model_copy(update={"performance": performance})

    async def _enrich(self, rows: Sequence[Dict[str, Any]], context: QueryContext) -> List[PropertyListing]:
        """
        Attach ordered photos, and appraisal summaries when the context asks for them.

        Args:
            rows: Listing rows from the datastore
            context: Join breadth

        Returns:
            List[PropertyListing]: Enriched listings, in the order of ``rows``
        """
        if not rows:
            return []

        property_ids = [str(row["id"]) for row in rows]
        photos: Dict[str, List[Dict[str, Any]]] = {}
        appraisals: Dict[str, List[Dict[str, Any]]] = {}

        if context.include_photos and context.include_appraisals:
            photos, appraisals = await asyncio.gather(
                self.store.fetch_photos(property_ids),
                self.store.fetch_appraisals(property_ids),
            )
        elif context.include_photos:
            photos = await self.store.fetch_photos(property_ids)
        elif context.include_appraisals:
            appraisals = await self.store.fetch_appraisals(property_ids)

        listings = []
        for property_id, row in zip(property_ids, rows):
            data = dict(row)
            data["photos"] = _sort_photos(photos.get(property_id, []))
            data["appraisal"] = summarize_appraisal(appraisals.get(property_id, []))
            listings.append(PropertyListing.model_validate(data))
        return listings

    async def get_properties(
        self,
        property_filter: Optional[PropertyFilter] = None,
        context: QueryContext = QueryContext.LISTING,
        pagination: Optional[PaginationRequest] = None
    ) -> PropertyPage:
        """
        Get one page of public listings matching a filter.

        A cached page is returned as stored, with only its performance metadata
        marked as a cache hit. Otherwise the count and the page are fetched
        concurrently, enriched, cached and returned.

        Args:
            property_filter: Search constraints, empty for all public listings
            context: Join breadth
            pagination: Page request, clamped to max_page_size; first default-sized page if None

        Returns:
            PropertyPage: The requested page

        Raises:
            PropertyServiceError: If the datastore fails
        """
        property_filter = property_filter or PropertyFilter()
        # A PaginationRequest built directly may exceed the page size ceiling
        if pagination is None:
            pagination = normalize_pagination(1, None, self.default_page_size, self.max_page_size)
        else:
            pagination = normalize_pagination(
                pagination.page, pagination.limit, self.default_page_size, self.max_page_size
            )

        key = self.policy.key_for(property_filter, pagination, context)
        cached = await self._read_cache(key, PropertyPage)
        if cached is not None:
            return self._mark_cached(cached)

        predicates = compile_search(property_filter, self.public_status)
        start = time.perf_counter()
        try:
            total, rows = await asyncio.gather(
                self.store.count_properties(predicates),
                self.store.fetch_properties(predicates, pagination.offset, pagination.limit),
            )
            items = await self._enrich(rows, context)
        except DatastoreError as e:
            logger.error(f"Property search failed: {e.message}")
            raise PropertyServiceError(f"Failed to fetch properties: {e.message}", e.status_code) from e

        page = PropertyPage(
            items=items,
            page=pagination.page,
            limit=pagination.limit,
            total=total,
            totalPages=PropertyPage.total_pages(total, pagination.limit),
            performance=PerformanceInfo(
                queryTime=_elapsed_ms(start),
                resultCount=len(items),
                cacheHit=False,
                cachedAt=_now_iso(),
            ),
        )
        logger.info(
            f"Property search returned {len(items)} of {total} listings "
            f"in {page.performance.queryTime}ms"
        )

        await self._write_cache(key, page, CacheCategory.SEARCH)
        return page

    async def get_property(self, property_id: str) -> PropertyListing:
        """
        Get a single listing with its photos and latest appraisal.

        Detail reads are not restricted to the public status.

        Args:
            property_id: Identity of the listing

        Returns:
            PropertyListing: The listing

        Raises:
            PropertyNotFoundError: If no listing has this id
            PropertyServiceError: If the datastore fails
        """
        key = self.policy.detail_key(property_id)
        cached = await self._read_cache(key, PropertyListing)
        if cached is not None:
            return cached

        try:
            row = await self.store.fetch_property(property_id)
            if row is None:
                raise PropertyNotFoundError(property_id)
            listing = (await self._enrich([row], QueryContext.DETAIL))[0]
        except DatastoreError as e:
            logger.error(f"Fetching property {property_id} failed: {e.message}")
            raise PropertyServiceError(f"Failed to fetch property: {e.message}", e.status_code) from e

        await self._write_cache(key, listing, CacheCategory.DETAIL)
        return listing

    async def get_similar_properties(self, property_id: str, limit: int = 8) -> PropertyPage:
        """
        Get public listings similar to a given one.

        Similar means same city and property type, priced within 70%-130% of the
        reference listing when it has a price, excluding the listing itself.

        Args:
            property_id: Identity of the reference listing
            limit: Maximum number of similar listings

        Returns:
            PropertyPage: First page of similar listings
        """
        reference = await self.get_property(property_id)

        min_price = max_price = None
        if reference.price:
            min_price = reference.price * SIMILAR_PRICE_BAND[0]
            max_price = reference.price * SIMILAR_PRICE_BAND[1]

        property_filter = PropertyFilter(
            city=reference.city,
            property_type=reference.property_type,
            min_price=min_price,
            max_price=max_price,
            exclude_id=property_id,
        )
        pagination = normalize_pagination(1, limit, self.default_page_size, self.max_page_size)
        return await self.get_properties(property_filter, QueryContext.LISTING, pagination)

    async def get_featured_properties(self, limit: int = 6) -> FeaturedProperties:
        """
        Get the newest public listings, cached as an aggregate.

        Args:
            limit: Number of listings, clamped like any page size

        Returns:
            FeaturedProperties: Newest public listings with photos
        """
        limit = normalize_pagination(1, limit, self.default_page_size, self.max_page_size).limit
        key = self.policy.aggregate_key("featured", limit)
        cached = await self._read_cache(key, FeaturedProperties)
        if cached is not None:
            return self._mark_cached(cached)

        start = time.perf_counter()
        try:
            rows = await self.store.fetch_properties([status_predicate(self.public_status)], 0, limit)
            items = await self._enrich(rows, QueryContext.LISTING)
        except DatastoreError as e:
            logger.error(f"Fetching featured properties failed: {e.message}")
            raise PropertyServiceError(f"Failed to fetch featured properties: {e.message}", e.status_code) from e

        featured = FeaturedProperties(
            items=items,
            performance=PerformanceInfo(
                queryTime=_elapsed_ms(start),
                resultCount=len(items),
                cachedAt=_now_iso(),
            ),
        )
        await self._write_cache(key, featured, CacheCategory.AGGREGATE)
        return featured

    async def get_property_stats(self) -> PropertyStats:
        """
        Get aggregate listing statistics.

        Uses the datastore's statistics function, falling back to plain counts
        when it fails.

        Returns:
            PropertyStats: Totals and average price

        Raises:
            PropertyServiceError: If the fallback counts fail too
        """
        key = self.policy.aggregate_key("stats")
        cached = await self._read_cache(key, PropertyStats)
        if cached is not None:
            return self._mark_cached(cached)

        start = time.perf_counter()
        try:
            data = await self.store.property_statistics()
        except DatastoreError as e:
            logger.warning(f"Statistics function failed, falling back to counts: {e.message}")
            data = await self._fallback_stats()

        data = {k: v for k, v in (data or {}).items() if v is not None}
        data["performance"] = PerformanceInfo(queryTime=_elapsed_ms(start), cachedAt=_now_iso())
        stats = PropertyStats.model_validate(data)

        await self._write_cache(key, stats, CacheCategory.AGGREGATE)
        return stats

    async def _fallback_stats(self) -> Dict[str, Any]:
        try:
            total, active = await asyncio.gather(
                self.store.count_properties([]),
                self.store.count_properties([status_predicate(self.public_status)]),
            )
        except DatastoreError as e:
            logger.error(f"Fallback statistics failed: {e.message}")
            raise PropertyServiceError(f"Failed to fetch property statistics: {e.message}", e.status_code) from e

        return {
            "total_properties": total,
            "active_properties": active,
            "pending_properties": total - active,
            "avg_price": 0.0,
        }
