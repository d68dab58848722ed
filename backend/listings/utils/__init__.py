"""
Utility modules for the property listings service.

This package contains utility functions used across the application,
such as the datastore HTTP helpers.
"""
