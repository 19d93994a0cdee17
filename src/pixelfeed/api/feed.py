"""Feed pagination helpers for the Pixelfeed API.

This module isolates the query-parameter handling of ``GET /api/feed`` from
``pixelfeed.api.main`` so the route handler only deals with HTTP concerns and
the paging rules stay testable on their own.

A bad ``page`` or ``limit`` never produces an error; it falls back to a
default instead.

- ``page`` and ``limit`` are read up to the first non-digit (``"2.5"`` is 2).
- ``page`` missing, non-numeric or below 1 resolves to 1.
- ``limit`` missing, non-numeric or below 1 resolves to the default page size.
- ``limit`` above the maximum is clamped to the maximum.
- ``totalPages`` is never below 1, even for an empty feed.

``page`` is not clamped to the last page: a page past the end simply
returns no images.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50

# Leading optionally-signed integer; anything after the digits is ignored.
_LEADING_INT = re.compile(r"\s*([+-]?\d+)", re.ASCII)


@dataclass(frozen=True)
class FeedWindow:
    """Resolved paging parameters for one feed request."""

    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _parse_positive_int(raw: str | int | None) -> int | None:
    """Return *raw* as an int >= 1, or ``None`` if it is absent or unusable.

    Strings are read up to their first non-digit, so ``"2.5"`` is 2 and
    ``"3abc"`` is 3, while ``"abc"`` has no number at all.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(str(raw))
        if match is None:
            return None
        try:
            value = int(match.group(1))
        except ValueError:
            # Exceeds the interpreter's integer string conversion limit.
            return None
    return value if value >= 1 else None


def resolve_page(raw: str | int | None) -> int:
    """Resolve the requested page number, falling back to 1."""
    value = _parse_positive_int(raw)
    return DEFAULT_PAGE if value is None else value


def resolve_limit(
    raw: str | int | None,
    *,
    default: int = DEFAULT_LIMIT,
    maximum: int = MAX_LIMIT,
) -> int:
    """Resolve the requested page size.

    Args:
        raw: Raw ``limit`` query value.
        default: Page size used when *raw* is missing or invalid.
        maximum: Upper bound; larger requests are silently reduced.

    Returns:
        A page size between 1 and *maximum*.
    """
    value = _parse_positive_int(raw)
    if value is None:
        value = default
    return min(value, maximum)


def resolve_window(
    page: str | int | None,
    limit: str | int | None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> FeedWindow:
    """Resolve both paging parameters at once."""
    return FeedWindow(
        page=resolve_page(page),
        limit=resolve_limit(limit, default=default_limit, maximum=max_limit),
    )


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for *total* images, never less than 1."""
    if total <= 0:
        return 1
    return (total + limit - 1) // limit
