"""Cursor pagination with cutoff-based early termination.

The server hands pages back newest first. ``paginate`` keeps every item at or
after the cutoff and stops as soon as one of these holds:

* a page comes back empty;
* the oldest timestamp seen on a page is older than the cutoff (later pages
  can only be older still) - in-window items of that page are kept first;
* the server sends no cursor, or a cursor that was already consumed;
* the page ceiling is reached;
* a page fetch fails - the failure is logged and the items gathered so far
  are returned.

Items without a timestamp are always kept and never move the page minimum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Generic, List, Optional, TypeVar

import requests

from skyscore.errors import HttpError, PaginationAbort

from .records import Page

T = TypeVar("T")

_LOGGER = logging.getLogger("skyscore.pagination")

STOP_EXHAUSTED = "exhausted"
STOP_CUTOFF = "cutoff"
STOP_NO_CURSOR = "no_cursor"
STOP_CURSOR_REPEAT = "cursor_repeat"
STOP_PAGE_LIMIT = "page_limit"
STOP_FETCH_ERROR = "fetch_error"

PageFetcher = Callable[[Optional[str]], Page[T]]
TimestampOf = Callable[[T], Optional[datetime]]


@dataclass(slots=True)
class PaginationResult(Generic[T]):
    items: List[T] = field(default_factory=list)
    pages: int = 0
    stop_reason: str = STOP_EXHAUSTED
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.items)


def _fetch(fetch_page: PageFetcher, cursor: Optional[str], label: str) -> Page[T]:
    try:
        return fetch_page(cursor)
    except (HttpError, requests.RequestException, ValueError) as exc:
        _LOGGER.warning(
            "Pagination of %s stopped at cursor=%s: %s", label, cursor, exc, extra={"collection": label}
        )
        raise PaginationAbort(STOP_FETCH_ERROR) from exc


def _keep_in_window(
    page: Page[T],
    cutoff: Optional[datetime],
    timestamp_of: TimestampOf,
    result: PaginationResult[T],
) -> Optional[datetime]:
    """Append in-window items of *page*; return the page's oldest real timestamp."""
    oldest: Optional[datetime] = None
    for item in page.records:
        stamp = timestamp_of(item)
        if stamp is None:
            result.items.append(item)
            continue
        if oldest is None or stamp < oldest:
            oldest = stamp
        if cutoff is None or stamp >= cutoff:
            result.items.append(item)
    return oldest


def paginate(
    fetch_page: PageFetcher,
    *,
    timestamp_of: TimestampOf,
    cutoff: Optional[datetime] = None,
    max_pages: int = 50,
    label: str = "collection",
) -> PaginationResult[T]:
    """Walk pages from ``fetch_page`` until a stop condition holds."""
    result: PaginationResult[T] = PaginationResult()
    consumed: set[str] = set()
    cursor: Optional[str] = None
    try:
        while True:
            if result.pages >= max_pages:
                raise PaginationAbort(STOP_PAGE_LIMIT)
            page = _fetch(fetch_page, cursor, label)
            result.pages += 1
            if not page.records:
                raise PaginationAbort(STOP_EXHAUSTED)
            oldest = _keep_in_window(page, cutoff, timestamp_of, result)
            if cutoff is not None and oldest is not None and oldest < cutoff:
                raise PaginationAbort(STOP_CUTOFF)
            if not page.cursor:
                raise PaginationAbort(STOP_NO_CURSOR)
            if page.cursor in consumed or page.cursor == cursor:
                raise PaginationAbort(STOP_CURSOR_REPEAT)
            consumed.add(page.cursor)
            cursor = page.cursor
    except PaginationAbort as stop:
        result.stop_reason = stop.reason
        if stop.__cause__ is not None:
            result.error = str(stop.__cause__)
    _LOGGER.debug(
        "%s: %s items in %s pages (%s)", label, result.count, result.pages, result.stop_reason
    )
    return result
