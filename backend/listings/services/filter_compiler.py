"""
Filter compilation for property searches.

This module translates a PropertyFilter into a flat list of predicates against
the listings table, and normalizes raw pagination input into a bounded page
request. Predicates can be rendered as PostgREST query parameters or evaluated
against an in-memory row.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..api.models import PaginationRequest, PropertyFilter

logger = logging.getLogger(__name__)

# Identity, status and tour columns of the listings table
ID_COLUMN = "id"
STATUS_COLUMN = "status"
TOUR_COLUMN = "virtual_tour_url"


class Operator(str, Enum):
    """Comparison operators supported by the listings store."""
    EQ = "eq"
    NEQ = "neq"
    GTE = "gte"
    LTE = "lte"
    IN = "in"
    NOT_NULL = "not_null"


class InvalidPaginationError(ValueError):
    """Raised when a page request cannot be satisfied."""


@dataclass(frozen=True)
class QueryPredicate:
    """
    One compiled constraint on a listings column.

    Attributes:
        column: Column the constraint applies to
        operator: Comparison operator
        value: Right-hand side; unused for NOT_NULL, a tuple for IN
    """
    column: str
    operator: Operator
    value: Any = None

    def to_param(self) -> Tuple[str, str]:
        """
        Render the predicate as a PostgREST query parameter.

        Returns:
            Tuple[str, str]: (column, "op.value") pair
        """
        if self.operator is Operator.NOT_NULL:
            return self.column, "not.is.null"
        if self.operator is Operator.IN:
            values = ",".join(_quote(_format_value(v)) for v in self.value)
            return self.column, f"in.({values})"
        return self.column, f"{self.operator.value}.{_format_value(self.value)}"

    def matches(self, row: Dict[str, Any]) -> bool:
        """
        Evaluate the predicate against a row using SQL null semantics.

        Args:
            row: Mapping of column names to values

        Returns:
            bool: True if the row satisfies the predicate
        """
        actual = row.get(self.column)
        if self.operator is Operator.NOT_NULL:
            return actual is not None
        if actual is None:
            return False
        if self.operator is Operator.EQ:
            return actual == self.value
        if self.operator is Operator.NEQ:
            return actual != self.value
        if self.operator is Operator.GTE:
            return actual >= self.value
        if self.operator is Operator.LTE:
            return actual <= self.value
        if self.operator is Operator.IN:
            return actual in self.value
        raise ValueError(f"Unsupported operator: {self.operator}")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _quote(value: str) -> str:
    # PostgREST reserves commas and parentheses inside in.(...) lists
    if any(ch in value for ch in ',()"'):
        escaped = value.replace('"', '\\"')
        return f'"{escaped}"'
    return value


# Filter field -> (column, operator), in emission order
_FIELD_PREDICATES: List[Tuple[str, str, Operator]] = [
    ("city", "city", Operator.EQ),
    ("compound", "compound", Operator.EQ),
    ("property_type", "property_type", Operator.EQ),
    ("min_bedrooms", "bedrooms", Operator.GTE),
    ("max_bedrooms", "bedrooms", Operator.LTE),
    ("min_price", "price", Operator.GTE),
    ("max_price", "price", Operator.LTE),
    ("exclude_id", ID_COLUMN, Operator.NEQ),
]


def compile_filter(property_filter: PropertyFilter) -> List[QueryPredicate]:
    """
    Compile a filter into predicates, one per present field.

    Absent fields contribute nothing. ``has_virtual_tour`` only constrains when
    it is true; false and absent are both unconstrained.

    Args:
        property_filter: The filter to compile

    Returns:
        List[QueryPredicate]: Predicates in a stable order
    """
    predicates: List[QueryPredicate] = []

    for field_name, column, operator in _FIELD_PREDICATES:
        value = getattr(property_filter, field_name)
        if value is not None:
            predicates.append(QueryPredicate(column, operator, value))

    if property_filter.has_virtual_tour is True:
        predicates.append(QueryPredicate(TOUR_COLUMN, Operator.NOT_NULL))

    return predicates


def status_predicate(status: str) -> QueryPredicate:
    """Build the predicate pinning general searches to the public status."""
    return QueryPredicate(STATUS_COLUMN, Operator.EQ, status)


def compile_search(property_filter: PropertyFilter, public_status: str) -> List[QueryPredicate]:
    """
    Compile a filter for the general search path.

    The public-status predicate is always added, whatever the filter holds.

    Args:
        property_filter: The caller's filter
        public_status: Status every returned listing must have

    Returns:
        List[QueryPredicate]: Status predicate followed by the filter predicates
    """
    predicates = [status_predicate(public_status)] + compile_filter(property_filter)
    logger.debug(f"Compiled {len(predicates)} predicates: {[p.to_param() for p in predicates]}")
    return predicates


def normalize_pagination(
    page: Optional[int],
    limit: Optional[int],
    default_limit: int = 20,
    max_limit: int = 50
) -> PaginationRequest:
    """
    Normalize raw page/limit input.

    A missing or non-positive limit falls back to ``default_limit``; any limit
    above ``max_limit`` is clamped to it.

    Args:
        page: Requested 1-based page, None for the first page
        limit: Requested page size
        default_limit: Page size used when limit is missing or not positive
        max_limit: Hard ceiling on the page size

    Returns:
        PaginationRequest: The normalized request

    Raises:
        InvalidPaginationError: If page is less than 1
    """
    if page is None:
        page = 1
    if page < 1:
        raise InvalidPaginationError(f"page must be >= 1, got {page}")

    if limit is None or limit <= 0:
        effective_limit = default_limit
    else:
        effective_limit = min(limit, max_limit)

    return PaginationRequest(page=page, limit=effective_limit)
