"""
Property write path.

Creates, updates and deletes listings through the datastore, then awaits the
cache invalidation for the mutated listing so the next read recomputes.
"""
import logging
from typing import Any, Dict

from ..core.errors import PropertyNotFoundError, PropertyValidationError
from .cache_invalidation import CacheInvalidator
from .property_store import PropertyStore

logger = logging.getLogger(__name__)


class PropertyAdminService:
    """
    Mutations on property listings.

    Attributes:
        store: Listings datastore
        invalidator: Cache invalidation trigger run after every successful write
    """

    def __init__(self, store: PropertyStore, invalidator: CacheInvalidator) -> None:
        self.store = store
        self.invalidator = invalidator

    async def create_property(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise PropertyValidationError("Property data cannot be empty")

        row = await self.store.insert_property(data)
        logger.info(f"Created property {row.get('id')}")
        await self.invalidator.on_property_created(str(row.get("id")))
        return row

    async def update_property(self, property_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not property_id:
            raise PropertyValidationError("Property id is required")
        if not data:
            raise PropertyValidationError("No fields to update")

        row = await self.store.update_property(property_id, data)
        if row is None:
            raise PropertyNotFoundError(property_id)

        logger.info(f"Updated property {property_id}: {sorted(data)}")
        await self.invalidator.on_property_updated(property_id)
        return row

    async def delete_property(self, property_id: str) -> None:
        if not property_id:
            raise PropertyValidationError("Property id is required")

        deleted = await self.store.delete_property(property_id)
        if not deleted:
            raise PropertyNotFoundError(property_id)

        logger.info(f"Deleted property {property_id}")
        await self.invalidator.on_property_deleted(property_id)
