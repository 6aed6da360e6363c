"""
pagination.py
=============
Fixed-size, 1-based pagination for the list views.
"""

import math
from typing import Any, List, Optional, Sequence, Union

# Page sizes used by each list view
PAGE_SIZES = {
    "appointments": 10,
    "records": 10,
    "reminders": 10,
    "feedbacks": 8,
}

# Marker for a gap in the page-number window
ELLIPSIS = "..."


def paginate(items: Sequence[Any], page: int, size: int) -> List[Any]:
    """
    Items of ``page`` (1-based): ``items[(page-1)*size : page*size]``.
    Page 0, negative pages and pages past the end return an empty list.
    """
    if size <= 0:
        raise ValueError("page size must be positive")
    if page < 1:
        return []
    return list(items[(page - 1) * size: page * size])


def page_count(total: int, size: int) -> int:
    if size <= 0:
        raise ValueError("page size must be positive")
    return math.ceil(total / size) if total > 0 else 0


def page_window(current: int, total_pages: int) -> List[Union[int, str]]:
    """
    Page numbers shown by the pager: the first page, the pages around the
    current one, the last page, with ELLIPSIS where pages are skipped.
    Empty when there is nothing to page through.

    >>> page_window(5, 10)
    [1, '...', 4, 5, 6, '...', 10]
    """
    if total_pages <= 1:
        return []
    pages: List[Union[int, str]] = [1]
    start = max(2, current - 1)
    end = min(total_pages - 1, current + 1)
    if start > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages - 1:
        pages.append(ELLIPSIS)
    pages.append(total_pages)
    return pages


class Page:
    """One page of a filtered collection, with what the pager needs."""

    def __init__(self, items: Sequence[Any], page: int, size: int):
        self.total = len(items)
        self.page = page
        self.size = size
        self.items = paginate(items, page, size)
        self.pages = page_count(self.total, size)

    @property
    def has_previous(self) -> bool:
        return 1 < self.page <= self.pages

    @property
    def has_next(self) -> bool:
        return 1 <= self.page < self.pages

    @property
    def is_empty(self) -> bool:
        return not self.items

    def window(self) -> List[Union[int, str]]:
        return page_window(self.page, self.pages)

    def __repr__(self):
        return f"<Page {self.page}/{self.pages} items={len(self.items)} total={self.total}>"


def page_for(kind: str, items: Sequence[Any], page: int, size: Optional[int] = None) -> Page:
    """Paginate with the view's default page size."""
    return Page(items, page, size or PAGE_SIZES.get(kind, 10))
