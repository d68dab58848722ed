"""
Core configuration, environment bootstrap and shared error types.
"""
