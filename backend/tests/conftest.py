"""
Pytest configuration file for the property listings service.

This module defines fixtures and configuration for pytest tests, including an
in-memory listings store that evaluates compiled predicates the same way the
hosted datastore does.
"""
import os
import sys
import uuid
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Generator, List, Optional, Sequence
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Test settings must be in place before the settings module is imported
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("REDIS_URL", None)

from listings.main import app as main_app
from listings.api.dependencies import (
    get_cache_invalidator,
    get_cache_store,
    get_property_admin,
    get_property_service,
)
from listings.core.errors import DatastoreError
from listings.services.cache_invalidation import CacheInvalidator
from listings.services.cache_policy import CachePolicy
from listings.services.cache_store import InMemoryCacheStore, RedisCacheStore
from listings.services.filter_compiler import QueryPredicate
from listings.services.property_admin import PropertyAdminService
from listings.services.property_service import PropertyService
from listings.services.property_store import PropertyStore


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

LISTING_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryPropertyStore(PropertyStore):
    """
    PropertyStore over plain dictionaries.

    Attributes:
        rows: Listing rows
        photos: Photo rows keyed by property id
        appraisals: Appraisal rows keyed by property id
        stats: Result of the statistics function, None to make it fail
        fail: When True every call raises DatastoreError
        calls: Names of the methods called, in order
    """

    def __init__(self) -> None:
        self.rows: List[Dict[str, Any]] = []
        self.photos: Dict[str, List[Dict[str, Any]]] = {}
        self.appraisals: Dict[str, List[Dict[str, Any]]] = {}
        self.stats: Optional[Dict[str, Any]] = None
        self.fail = False
        self.calls: List[str] = []

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail:
            raise DatastoreError("connection refused", status_code=503)

    def _matching(self, predicates: Sequence[QueryPredicate]) -> List[Dict[str, Any]]:
        return [row for row in self.rows if all(p.matches(row) for p in predicates)]

    async def count_properties(self, predicates: Sequence[QueryPredicate]) -> int:
        self._record("count_properties")
        return len(self._matching(predicates))

    async def fetch_properties(self, predicates, offset, limit, order_by="created_at", descending=True):
        self._record("fetch_properties")
        rows = sorted(self._matching(predicates), key=lambda r: r.get(order_by) or "", reverse=descending)
        return [dict(row) for row in rows[offset:offset + limit]]

    async def fetch_photos(self, property_ids):
        self._record("fetch_photos")
        return {pid: list(self.photos[pid]) for pid in property_ids if pid in self.photos}

    async def fetch_appraisals(self, property_ids):
        self._record("fetch_appraisals")
        return {pid: list(self.appraisals[pid]) for pid in property_ids if pid in self.appraisals}

    async def fetch_property(self, property_id):
        self._record("fetch_property")
        for row in self.rows:
            if row["id"] == property_id:
                return dict(row)
        return None

    async def insert_property(self, data):
        self._record("insert_property")
        row = {"id": str(uuid.uuid4()), "created_at": "2099-01-01T00:00:00+00:00", **data}
        self.rows.append(row)
        return dict(row)

    async def update_property(self, property_id, data):
        self._record("update_property")
        for row in self.rows:
            if row["id"] == property_id:
                row.update(data)
                return dict(row)
        return None

    async def delete_property(self, property_id):
        self._record("delete_property")
        before = len(self.rows)
        self.rows = [row for row in self.rows if row["id"] != property_id]
        return len(self.rows) < before

    async def property_statistics(self):
        self._record("property_statistics")
        if self.stats is None:
            raise DatastoreError("function get_property_statistics() does not exist", status_code=404)
        return dict(self.stats)


def make_listing(index: int, **overrides: Any) -> Dict[str, Any]:
    """
    Build a listing row; later indexes are newer.

    Args:
        index: Sequence number used for the id and the creation time
        **overrides: Column values to override

    Returns:
        Dict[str, Any]: A listing row
    """
    row = {
        "id": f"prop-{index:03d}",
        "title": f"Listing {index}",
        "price": 2_000_000.0 + index * 10_000,
        "bedrooms": 2,
        "bathrooms": 1,
        "square_meters": 120.0,
        "address": f"{index} Main Street",
        "city": "Cairo",
        "state": "Cairo",
        "compound": None,
        "property_type": "apartment",
        "status": "available",
        "virtual_tour_url": None,
        "created_at": (LISTING_EPOCH + timedelta(minutes=index)).isoformat(),
    }
    row.update(overrides)
    return row


@pytest.fixture
def listing_factory():
    """
    Factory for listing rows.

    Returns:
        Callable: make_listing
    """
    return make_listing


@pytest.fixture
def property_store() -> InMemoryPropertyStore:
    """
    Empty in-memory listings store.

    Returns:
        InMemoryPropertyStore: Store to seed in the test
    """
    return InMemoryPropertyStore()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    """In-process cache store."""
    return InMemoryCacheStore(max_size=100)


@pytest.fixture
def broken_redis() -> MagicMock:
    """
    Redis client whose every call fails as if the server were down.

    Returns:
        MagicMock: Client double raising ConnectionError
    """
    client = MagicMock()
    error = RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
    client.get = AsyncMock(side_effect=error)
    client.set = AsyncMock(side_effect=error)
    client.delete = AsyncMock(side_effect=error)
    client.ping = AsyncMock(side_effect=error)
    client.scan_iter = MagicMock(side_effect=error)
    return client


@pytest.fixture
def broken_cache_store(broken_redis: MagicMock) -> RedisCacheStore:
    """Redis cache store pointed at an unavailable server."""
    return RedisCacheStore(broken_redis)


@pytest.fixture
def cache_policy() -> CachePolicy:
    """Cache policy with the default TTLs."""
    return CachePolicy(prefix="properties")


@pytest.fixture
def invalidator(cache_store: InMemoryCacheStore, cache_policy: CachePolicy) -> CacheInvalidator:
    return CacheInvalidator(cache_store, cache_policy)


@pytest.fixture
def property_service(
    property_store: InMemoryPropertyStore,
    cache_store: InMemoryCacheStore,
    cache_policy: CachePolicy
) -> PropertyService:
    """
    Property service wired to the in-memory store and cache.

    Returns:
        PropertyService: Service under test
    """
    return PropertyService(property_store, cache_store, cache_policy)


@pytest.fixture
def property_admin(property_store: InMemoryPropertyStore, invalidator: CacheInvalidator) -> PropertyAdminService:
    return PropertyAdminService(property_store, invalidator)


@pytest.fixture
def app(
    property_service: PropertyService,
    property_admin: PropertyAdminService,
    cache_store: InMemoryCacheStore,
    invalidator: CacheInvalidator
) -> Generator[FastAPI, None, None]:
    """
    FastAPI test application.

    The shared services are replaced through dependency overrides so no
    datastore or Redis connection is opened.

    Yields:
        FastAPI: Application instance for testing
    """
    main_app.dependency_overrides[get_property_service] = lambda: property_service
    main_app.dependency_overrides[get_property_admin] = lambda: property_admin
    main_app.dependency_overrides[get_cache_store] = lambda: cache_store
    main_app.dependency_overrides[get_cache_invalidator] = lambda: invalidator
    yield main_app
    main_app.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """
    TestClient fixture.

    Provides a FastAPI TestClient for testing API endpoints.

    Args:
        app: FastAPI application fixture

    Returns:
        TestClient: FastAPI test client
    """
    return TestClient(app)
