"""
Services package for the property listings service.

This package contains the modules that implement the core business logic:
filter compilation, cache policy and stores, datastore access, the query
service and the write path with its cache invalidation.
"""

from . import (
    filter_compiler,
    cache_policy,
    cache_store,
    property_store,
    cache_invalidation,
    property_service,
    property_admin
)
