"""
Pagination of sorted result sets.

Pagination always runs after filtering and sorting so the reported total is
the size of the filtered set, not of the page.
"""

from collections.abc import Sequence
from typing import Generic, TypeVar

from pydantic import Field

from .errors import ValidationError
from .models import CamelModel

T = TypeVar("T")

DEFAULT_MAX_LIMIT = 100


class Pagination(CamelModel):
    """Pagination block returned with every list response."""

    total: int = Field(..., description="Size of the filtered result set")
    limit: int
    offset: int
    has_more: bool


class Page(CamelModel, Generic[T]):
    items: list[T]
    pagination: Pagination


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_window(
    limit: int, offset: int, max_limit: int = DEFAULT_MAX_LIMIT
) -> None:
    """
    Check a limit/offset pair.

    Raises:
        ValidationError: limit outside [1, max_limit] or negative offset
    """
    details = []
    if not _is_int(limit) or not 1 <= limit <= max_limit:
        details.append(
            {
                "field": "limit",
                "message": f"must be an integer between 1 and {max_limit}",
            }
        )
    if not _is_int(offset) or offset < 0:
        details.append({"field": "offset", "message": "must be a non-negative integer"})
    if details:
        raise ValidationError(details)


def paginate(
    sorted_items: Sequence[T],
    limit: int,
    offset: int,
    max_limit: int = DEFAULT_MAX_LIMIT,
) -> Page[T]:
    """
    Slice a sorted result set.

    An offset past the end yields an empty page rather than an error.
    """
    validate_window(limit, offset, max_limit)
    total = len(sorted_items)
    return Page(
        items=list(sorted_items[offset : offset + limit]),
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        ),
    )
