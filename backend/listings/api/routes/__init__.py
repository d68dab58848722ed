"""
Routes package for the property listings service.

This package contains API route definitions for all endpoints.
"""

from . import property_routes
from . import cache_routes
from . import health
