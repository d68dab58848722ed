"""
Exception types shared across the property listings service.
"""
from typing import Optional


class DatastoreError(Exception):
    """
    Raised when the listings datastore rejects or fails a request.

    Attributes:
        message: Diagnostic message
        status_code: HTTP status returned by the datastore, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PropertyServiceError(DatastoreError):
    """Raised by the property service when a read against the datastore fails."""


class PropertyNotFoundError(Exception):
    """Raised when a property id does not exist."""

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Property not found: {property_id}")
        self.property_id = property_id


class PropertyValidationError(ValueError):
    """Raised when a write request is semantically invalid."""
