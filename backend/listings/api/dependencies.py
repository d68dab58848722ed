"""
Dependencies for FastAPI application.

This module provides dependency functions that hand the shared services,
constructed once at startup and kept on the application state, to the routes.
"""
from fastapi import Request

from ..services.cache_invalidation import CacheInvalidator
from ..services.cache_store import CacheStore
from ..services.property_admin import PropertyAdminService
from ..services.property_service import PropertyService


def get_property_service(request: Request) -> PropertyService:
    return request.app.state.property_service


def get_property_admin(request: Request) -> PropertyAdminService:
    return request.app.state.property_admin


def get_cache_store(request: Request) -> CacheStore:
    return request.app.state.cache_store


def get_cache_invalidator(request: Request) -> CacheInvalidator:
    return request.app.state.cache_invalidator


__all__ = [
    'get_property_service',
    'get_property_admin',
    'get_cache_store',
    'get_cache_invalidator',
]
