from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass
from typing import Any

from .http import RateLimitSnapshot

_LINK_RE = re.compile(r'<([^>]*)>\s*;\s*rel="([^"]*)"')
_REL_FIELDS = {
    "next": "next_page",
    "prev": "prev_page",
    "first": "first_page",
    "last": "last_page",
}


@dataclass
class PaginationCursor:
    next_page: int | None = None
    prev_page: int | None = None
    first_page: int | None = None
    last_page: int | None = None
    total_count: int | None = None


@dataclass
class PaginatedResponse:
    data: Any
    pagination: PaginationCursor | None = None
    rate_limit: RateLimitSnapshot | None = None


def _page_number(url: str) -> int | None:
    query = urllib.parse.parse_qs(urllib.parse.urlparse(url).query)
    values = query.get("page")
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


def parse_link_header(value: str | None) -> PaginationCursor | None:
    """Parse a GitHub ``Link`` header into page numbers.

    Returns ``None`` when nothing usable was found, so "no header" and "header
    without known relations" look the same to callers.
    """
    if not value:
        return None

    cursor = PaginationCursor()
    found = False
    for entry in value.split(","):
        match = _LINK_RE.search(entry)
        if match is None:
            continue
        url, rel = match.groups()
        field = _REL_FIELDS.get(rel.strip())
        page = _page_number(url)
        if field is None or page is None:
            continue
        setattr(cursor, field, page)
        found = True

    return cursor if found else None


def with_total_count(cursor: PaginationCursor | None, total_count: int | None) -> PaginationCursor | None:
    if total_count is None:
        return cursor
    cursor = cursor or PaginationCursor()
    cursor.total_count = total_count
    return cursor
