"""
Cache key and TTL policy for property results.

This module derives deterministic cache keys from query parameters and assigns
a time-to-live per result category. Every key lives under a common prefix and a
category segment, so a whole category can be purged by pattern.
"""
import json
import hashlib
import logging
from enum import Enum
from typing import Dict, Optional

from ..api.models import PaginationRequest, PropertyFilter, QueryContext
from ..core.config import Settings

logger = logging.getLogger(__name__)


class CacheCategory(str, Enum):
    """Result categories, each with its own TTL and key segment."""
    SEARCH = "search"
    DETAIL = "detail"
    AGGREGATE = "aggregate"


class CachePolicy:
    """
    Key derivation and TTL assignment for cached property results.

    Attributes:
        prefix: Namespace shared by every key
        ttls: Seconds to live per category
    """

    def __init__(self, prefix: str = "properties", ttls: Optional[Dict[CacheCategory, int]] = None) -> None:
        self.prefix = prefix
        self.ttls = ttls or {
            CacheCategory.SEARCH: 300,
            CacheCategory.DETAIL: 900,
            CacheCategory.AGGREGATE: 3600,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "CachePolicy":
        return cls(
            prefix=settings.CACHE_KEY_PREFIX,
            ttls={
                CacheCategory.SEARCH: settings.SEARCH_CACHE_TTL,
                CacheCategory.DETAIL: settings.DETAIL_CACHE_TTL,
                CacheCategory.AGGREGATE: settings.AGGREGATE_CACHE_TTL,
            },
        )

    def ttl_for(self, category: CacheCategory) -> int:
        """
        Get the time-to-live for a category.

        Args:
            category: The result category

        Returns:
            int: TTL in seconds
        """
        return self.ttls[category]

    def key_for(
        self,
        property_filter: PropertyFilter,
        pagination: PaginationRequest,
        context: QueryContext = QueryContext.LISTING
    ) -> str:
        """
        Generate the cache key for one search page.

        Only present filter fields take part and they are serialized with sorted
        keys, so equivalent filters built in any order share a key.

        Args:
            property_filter: The search filter
            pagination: The normalized page request
            context: Join breadth, part of the key since it changes the payload

        Returns:
            str: Key of the form ``<prefix>:search:<sha256>``
        """
        hash_input = json.dumps(
            {
                "filter": property_filter.canonical(),
                "page": pagination.page,
                "limit": pagination.limit,
                "context": context.value,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        digest = hashlib.sha256(hash_input.encode("utf-8")).hexdigest()
        return f"{self.prefix}:{CacheCategory.SEARCH.value}:{digest}"

    def detail_key(self, property_id: str) -> str:
        return f"{self.prefix}:{CacheCategory.DETAIL.value}:{property_id}"

    def aggregate_key(self, name: str, *parts: object) -> str:
        suffix = "".join(f":{part}" for part in parts)
        return f"{self.prefix}:{CacheCategory.AGGREGATE.value}:{name}{suffix}"

    def category_pattern(self, category: CacheCategory) -> str:
        """Glob pattern matching every key in a category."""
        return f"{self.prefix}:{category.value}:*"
