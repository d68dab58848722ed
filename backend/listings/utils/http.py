"""
HTTP utility functions for the property listings service.

This module wraps outbound requests to the hosted datastore so transport
failures and error statuses surface as a single DatastoreError type.
"""
import logging
from typing import Any, Optional

import httpx

from ..core.errors import DatastoreError

logger = logging.getLogger(__name__)


async def api_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    **kwargs: Any
) -> httpx.Response:
    """
    Make an API request and raise DatastoreError on failure.

    Requests are not retried; retry policy belongs to the caller.

    Args:
        client: The HTTPX client to use for the request
        method: HTTP method (GET, POST, etc.)
        url: URL to request, relative to the client's base URL
        **kwargs: Additional arguments to pass to the client request method

    Returns:
        httpx.Response: The successful response

    Raises:
        DatastoreError: If the request fails or returns an error status
    """
    logger.debug(f"Making {method} request to {url}")
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        detail = _error_detail(e.response)
        logger.error(f"HTTP error {status_code} for {method} {url}: {detail}")
        raise DatastoreError(detail, status_code=status_code) from e

    except httpx.HTTPError as e:
        logger.error(f"Transport error for {method} {url}: {e}")
        raise DatastoreError(f"Datastore request failed: {e}") from e


def _error_detail(response: httpx.Response) -> str:
    """Extract the most useful error message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def parse_content_range_total(header: Optional[str]) -> int:
    """
    Parse the total count from a Content-Range header such as ``0-19/45``.

    Args:
        header: The Content-Range header value

    Returns:
        int: The total count, 0 when absent or unknown
    """
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1].strip()
    if total == "*":
        return 0
    try:
        return int(total)
    except ValueError:
        logger.warning(f"Unparseable Content-Range header: {header}")
        return 0
