"""
Listings datastore access.

This module defines the PropertyStore interface the property service reads and
writes through, and its implementation against a hosted PostgREST endpoint
(Supabase). Predicates come from the filter compiler and are rendered as
query parameters.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..core.config import Settings
from ..core.errors import DatastoreError
from ..utils.http import api_request, parse_content_range_total
from .filter_compiler import Operator, QueryPredicate

logger = logging.getLogger(__name__)

PROPERTIES_TABLE = "properties"
PHOTOS_TABLE = "property_photos"
APPRAISALS_TABLE = "property_appraisals"
STATISTICS_RPC = "get_property_statistics"

LISTING_COLUMNS = (
    "id,title,price,bedrooms,bathrooms,square_meters,address,city,state,compound,"
    "property_type,status,latitude,longitude,virtual_tour_url,created_at,updated_at"
)
PHOTO_COLUMNS = "id,property_id,url,is_primary,order_index"
APPRAISAL_COLUMNS = "id,property_id,status,market_value_estimate,calculation_results,created_at"


class PropertyStore(ABC):
    """
    Read and write operations on the listings datastore.

    Every method raises DatastoreError when the datastore fails.
    """

    @abstractmethod
    async def count_properties(self, predicates: Sequence[QueryPredicate]) -> int:
        """Count listings matching every predicate."""

    @abstractmethod
    async def fetch_properties(
        self,
        predicates: Sequence[QueryPredicate],
        offset: int,
        limit: int,
        order_by: str = "created_at",
        descending: bool = True
    ) -> List[Dict[str, Any]]:
        """Fetch one ordered page of listings matching every predicate."""

    @abstractmethod
    async def fetch_photos(self, property_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Fetch photos for the given listings, grouped by property id."""

    @abstractmethod
    async def fetch_appraisals(self, property_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Fetch appraisals for the given listings, grouped by property id."""

    @abstractmethod
    async def fetch_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one listing row, or None if it does not exist."""

    @abstractmethod
    async def insert_property(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a listing and return the stored row."""

    @abstractmethod
    async def update_property(self, property_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update a listing and return the stored row, or None if it does not exist."""

    @abstractmethod
    async def delete_property(self, property_id: str) -> bool:
        """Delete a listing. Returns False if it did not exist."""

    @abstractmethod
    async def property_statistics(self) -> Dict[str, Any]:
        """Return aggregate listing statistics computed by the datastore."""

    async def close(self) -> None:
        """Release any connection held by the store."""


def _group_by_property(rows: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        grouped.setdefault(str(row.get("property_id")), []).append(row)
    return grouped


class SupabasePropertyStore(PropertyStore):
    """
    PropertyStore backed by a Supabase PostgREST endpoint.

    Attributes:
        client: Shared async HTTP client with the service key headers set
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabasePropertyStore":
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            logger.warning("SUPABASE_URL or SUPABASE_KEY not set in environment.")
        headers = {
            "apikey": settings.SUPABASE_KEY or "",
            "Authorization": f"Bearer {settings.SUPABASE_KEY or ''}",
            "Content-Type": "application/json",
        }
        client = httpx.AsyncClient(
            base_url=f"{settings.SUPABASE_URL or 'http://localhost:54321'}/rest/v1",
            headers=headers,
            timeout=settings.DATASTORE_TIMEOUT,
        )
        return cls(client)

    @staticmethod
    def _params(predicates: Sequence[QueryPredicate], **extra: str) -> List[tuple]:
        # A list of pairs, since range filters repeat the same column
        params = [predicate.to_param() for predicate in predicates]
        params.extend(extra.items())
        return params

    async def count_properties(self, predicates: Sequence[QueryPredicate]) -> int:
        response = await api_request(
            self.client,
            "HEAD",
            f"/{PROPERTIES_TABLE}",
            params=self._params(predicates, select="id"),
            headers={"Prefer": "count=exact"},
        )
        return parse_content_range_total(response.headers.get("content-range"))

    async def fetch_properties(
        self,
        predicates: Sequence[QueryPredicate],
        offset: int,
        limit: int,
        order_by: str = "created_at",
        descending: bool = True
    ) -> List[Dict[str, Any]]:
        direction = "desc" if descending else "asc"
        response = await api_request(
            self.client,
            "GET",
            f"/{PROPERTIES_TABLE}",
            params=self._params(
                predicates,
                select=LISTING_COLUMNS,
                order=f"{order_by}.{direction}",
                offset=str(offset),
                limit=str(limit),
            ),
        )
        return response.json()

    async def _fetch_related(self, table: str, columns: str, order: str, property_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        if not property_ids:
            return {}
        ids = QueryPredicate("property_id", Operator.IN, tuple(property_ids))
        response = await api_request(
            self.client,
            "GET",
            f"/{table}",
            params=self._params([ids], select=columns, order=order),
        )
        return _group_by_property(response.json())

    async def fetch_photos(self, property_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        return await self._fetch_related(PHOTOS_TABLE, PHOTO_COLUMNS, "order_index.asc", property_ids)

    async def fetch_appraisals(self, property_ids: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
        return await self._fetch_related(APPRAISALS_TABLE, APPRAISAL_COLUMNS, "created_at.desc", property_ids)

    async def fetch_property(self, property_id: str) -> Optional[Dict[str, Any]]:
        response = await api_request(
            self.client,
            "GET",
            f"/{PROPERTIES_TABLE}",
            params={"select": "*", "id": f"eq.{property_id}"},
        )
        rows = response.json()
        return rows[0] if rows else None

    async def insert_property(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = await api_request(
            self.client,
            "POST",
            f"/{PROPERTIES_TABLE}",
            json=data,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise DatastoreError("Insert returned no row")
        return rows[0]

    async def update_property(self, property_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = await api_request(
            self.client,
            "PATCH",
            f"/{PROPERTIES_TABLE}",
            params={"id": f"eq.{property_id}"},
            json=data,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        return rows[0] if rows else None

    async def delete_property(self, property_id: str) -> bool:
        response = await api_request(
            self.client,
            "DELETE",
            f"/{PROPERTIES_TABLE}",
            params={"id": f"eq.{property_id}"},
            headers={"Prefer": "return=representation"},
        )
        return bool(response.json())

    async def property_statistics(self) -> Dict[str, Any]:
        response = await api_request(self.client, "POST", f"/rpc/{STATISTICS_RPC}", json={})
        stats = response.json()
        # Set-returning functions come back as a one-row list
        if isinstance(stats, list):
            stats = stats[0] if stats else {}
        return stats

    async def close(self) -> None:
        await self.client.aclose()
