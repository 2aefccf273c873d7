"""Page slicing for the expense and income list views."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

import pandas as pd

from .config import DEFAULT_PAGE_SIZE


def paginate(data: pd.DataFrame, page_size: int, page_number: int) -> pd.DataFrame:
    """Rows ``[(page_number - 1) * page_size, page_number * page_size)``.

    No bounds checking: a page past the end is simply empty.  Callers
    clamp with :func:`clamp_page` first.
    """
    start = (page_number - 1) * page_size
    return data.iloc[max(start, 0):max(start + page_size, 0)]


def total_pages(count: int, page_size: int) -> int:
    if page_size <= 0:
        return 0
    return math.ceil(count / page_size)


def clamp_page(page_number: int, count: int, page_size: int) -> int:
    pages = total_pages(count, page_size)
    return min(max(page_number, 1), max(pages, 1))


@dataclass(frozen=True)
class PageState:
    """Current page of a list view and the policy for moving it."""

    page_size: int = DEFAULT_PAGE_SIZE
    page_number: int = 1

    def with_page_size(self, page_size: int) -> 'PageState':
        return PageState(page_size=page_size, page_number=1)

    def with_filters_changed(self) -> 'PageState':
        return replace(self, page_number=1)

    def go_to(self, page_number: int, count: int) -> 'PageState':
        """Move only when ``page_number`` is a real page."""
        if 1 <= page_number <= total_pages(count, self.page_size):
            return replace(self, page_number=page_number)
        return self

    def after_removal(self, remaining: int) -> 'PageState':
        """Step back when deleting a row empties the current page."""
        pages = total_pages(remaining, self.page_size)
        if self.page_number > pages > 0:
            return replace(self, page_number=pages)
        return self

    def slice(self, data: pd.DataFrame) -> pd.DataFrame:
        return paginate(data, self.page_size, self.page_number)
