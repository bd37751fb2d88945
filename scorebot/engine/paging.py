"""
scorebot.engine.paging — Page Arithmetic for Listings
=======================================================

Slash-command listings show one page at a time.  A requested page past
the end clamps to the last page, and anything below 1 clamps to page 1,
so every item is reachable by asking for pages ``1..total_pages``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PageWindow:
    number: int
    total_pages: int
    total_items: int
    per_page: int

    @property
    def offset(self) -> int:
        return (self.number - 1) * self.per_page

    @property
    def first_item(self) -> int:
        """1-based position of the first item on the page (0 when empty)."""
        return self.offset + 1 if self.total_items else 0

    @property
    def last_item(self) -> int:
        return min(self.offset + self.per_page, self.total_items)


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    items: list[T]
    window: PageWindow

    @property
    def number(self) -> int:
        return self.window.number

    @property
    def total_pages(self) -> int:
        return self.window.total_pages


def page_window(total_items: int, page: int | None, per_page: int) -> PageWindow:
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_items = max(0, total_items)
    total_pages = max(1, -(-total_items // per_page))
    number = min(max(1, page or 1), total_pages)
    return PageWindow(
        number=number, total_pages=total_pages, total_items=total_items, per_page=per_page,
    )


def paginate(items: Sequence[T], page: int | None, per_page: int) -> Page[T]:
    window = page_window(len(items), page, per_page)
    return Page(items=list(items[window.offset:window.last_item]), window=window)
