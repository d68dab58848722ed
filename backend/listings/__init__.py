"""
Property Listings Service

This package provides the property search API: filter compilation, paginated
listing queries against the hosted datastore, and a cache layer with explicit
invalidation on writes.
"""

__version__ = "1.0.0"
