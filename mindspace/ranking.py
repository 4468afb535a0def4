"""
Sort policies for listings and search results.

Listings use a two-key comparator (primary key descending, tie-break
descending). Text queries add a binary relevance boost on top: title matches
move ahead of records that only matched on other fields, and the order
within each group is kept.
"""

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TypeVar

from .models import Counselor, Resource
from .utils import ensure_utc

T = TypeVar("T")


def sort_resources(resources: Iterable[Resource]) -> list[Resource]:
    """Highest rated first, newest publish date breaking ties."""
    return sorted(
        resources,
        key=lambda r: (r.rating, ensure_utc(r.publish_date)),
        reverse=True,
    )


def sort_counselors(counselors: Iterable[Counselor]) -> list[Counselor]:
    """Highest rated first, most experienced breaking ties."""
    return sorted(counselors, key=lambda c: (c.rating, c.experience), reverse=True)


def newest_first(records: Iterable[T], timestamp: Callable[[T], datetime]) -> list[T]:
    """Order a log newest first by the given timestamp accessor."""
    return sorted(
        records, key=lambda record: ensure_utc(timestamp(record)), reverse=True
    )


def by_rating(records: Iterable[T]) -> list[T]:
    """Highest rated first, keeping the given order among equal ratings."""
    return sorted(records, key=lambda record: record.rating, reverse=True)


def rank_by_relevance(
    records: Iterable[T],
    query: str | None,
    title: Callable[[T], str] = lambda record: getattr(record, "title"),
) -> list[T]:
    """
    Move records whose title contains the query ahead of the rest.

    The sort is stable, so records keep their existing relative order within
    the title-match and other-match groups.
    """
    ordered = list(records)
    if not query:
        return ordered
    needle = query.lower()
    return sorted(ordered, key=lambda record: needle not in title(record).lower())
