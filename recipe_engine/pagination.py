"""
Pagination helpers for ordered recipe lists.

Pages are 1-indexed. An empty sequence has zero pages and every page of it is
empty. Callers reset the current page to 1 whenever the page size, the view or
the active filter changes (see BrowserSession), and clamp requested pages into
range with clamp_page().
"""

import math
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def page_count(items: Sequence[T], page_size: int) -> int:
    """
    Number of pages needed for items at page_size (ceil(len / page_size)).

    Raises:
        ValueError: If page_size is not positive
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(len(items) / page_size)


def paginate(items: Sequence[T], page_size: int, page_number: int) -> List[T]:
    """
    Return the slice of items shown on page_number.

    Examples:
        >>> paginate([], 20, 1)
        []
        >>> paginate(list(range(1, 46)), 20, 3)
        [41, 42, 43, 44, 45]
    """
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    if page_number < 1:
        return []
    start = (page_number - 1) * page_size
    return list(items[start:start + page_size])


def clamp_page(page_number: int, total_pages: int) -> int:
    """Clamp a requested page into [1, total_pages] (1 when there are no pages)."""
    if total_pages <= 0:
        return 1
    return max(1, min(page_number, total_pages))
