"""
Cache invalidation for property mutations.

Any write to a listing purges every cached search page, every aggregate
(featured listings, statistics) and the listing's own detail entry. There is no
per-filter dependency tracking: the next read of any search is a forced miss.
"""
import logging
from typing import Optional

from .cache_policy import CacheCategory, CachePolicy
from .cache_store import CacheStore

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """
    Purges cached property results after writes.

    Attributes:
        cache: The cache store holding the results
        policy: Key policy used to name what gets purged
    """

    def __init__(self, cache: CacheStore, policy: CachePolicy) -> None:
        self.cache = cache
        self.policy = policy

    async def on_property_created(self, property_id: str) -> int:
        return await self._invalidate("created", property_id)

    async def on_property_updated(self, property_id: str) -> int:
        return await self._invalidate("updated", property_id)

    async def on_property_deleted(self, property_id: str) -> int:
        return await self._invalidate("deleted", property_id)

    async def clear_property(self, property_id: str) -> int:
        """
        Purge one property's detail entry, leaving search and aggregate results alone.

        Args:
            property_id: Identity of the property

        Returns:
            int: Number of keys deleted
        """
        deleted = await self.cache.delete(self.policy.detail_key(property_id))
        logger.info(f"Cleared {deleted} detail cache entries for property {property_id}")
        return deleted

    async def clear_all(self) -> int:
        """Purge every search and aggregate entry."""
        return await self._invalidate("cleared", None)

    async def _invalidate(self, event: str, property_id: Optional[str]) -> int:
        deleted = await self.cache.delete_pattern(self.policy.category_pattern(CacheCategory.SEARCH))
        deleted += await self.cache.delete_pattern(self.policy.category_pattern(CacheCategory.AGGREGATE))
        if property_id is not None:
            deleted += await self.cache.delete(self.policy.detail_key(property_id))

        logger.info(
            f"Invalidated {deleted} cache entries after property "
            f"{property_id or '*'} was {event}"
        )
        return deleted
