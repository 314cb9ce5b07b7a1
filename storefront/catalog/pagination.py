"""
Paginator: fixed-size page slicing and the page-button window.
"""

from __future__ import annotations

from typing import List, Sequence, TypeVar

from .schemas import ELLIPSIS, PageButton

T = TypeVar("T")

MAX_VISIBLE_PAGES = 5


def total_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return (max(0, total_items) + page_size - 1) // page_size


def paginate(items: Sequence[T], page: int, page_size: int) -> List[T]:
    """Return the items of ``page`` (1-indexed).

    Bounds are not validated: a page past the end gives an empty list.
    """
    start = max(0, (page - 1) * page_size)
    return list(items[start:start + page_size])


def page_buttons(current_page: int, total: int, max_visible: int = MAX_VISIBLE_PAGES) -> List[PageButton]:
    """Compute the page numbers to show around ``current_page``.

    Up to ``max_visible`` contiguous pages are centred on the current
    one and clamped to ``[1, total]``. The first and last pages are always
    reachable; ``ELLIPSIS`` marks a gap between them and the window.

    Examples
    --------
    >>> page_buttons(5, 10)
    [1, '...', 3, 4, 5, 6, 7, '...', 10]
    >>> page_buttons(1, 3)
    [1, 2, 3]
    """
    if total <= 1:
        return []
    start = max(1, current_page - max_visible // 2)
    end = min(total, start + max_visible - 1)
    # Near the end the window shifts left to stay full
    if end - start < max_visible - 1:
        start = max(1, end - max_visible + 1)

    buttons: List[PageButton] = []
    if start > 1:
        buttons.append(1)
        if start > 2:
            buttons.append(ELLIPSIS)
    buttons.extend(range(start, end + 1))
    if end < total:
        if end < total - 1:
            buttons.append(ELLIPSIS)
        buttons.append(total)
    return buttons


def has_previous(page: int) -> bool:
    return page > 1


def has_next(page: int, total: int) -> bool:
    return page < total
