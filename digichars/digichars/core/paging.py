"""
Provides support for paging through ordered result sets
"""
import math
from dataclasses import dataclass
from typing import Generic, Optional, Sequence, TypeVar

T = TypeVar("T")


def clamp_page(page: int, total_pages: int) -> int:
    """
    Clamps the page number into [1, total_pages].

    When there are no pages, then page 1 is returned, which is an empty page.
    """
    return max(1, min(page, max(total_pages, 1)))


@dataclass(slots=True, frozen=True)
class Page(Generic[T]):
    """
    A page of items sliced from an ordered sequence
    """

    items: tuple[T, ...]

    # 1-based page number
    page: int
    page_size: int

    # total number of items across all pages
    total_count: int

    @property
    def total_pages(self) -> int:
        """
        :return: ceiling(total_count / page_size)
        """
        return math.ceil(self.total_count / self.page_size)

    @property
    def offset(self) -> int:
        """
        :return: index of the first item on this page within the full sequence
        """
        return (self.page - 1) * self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass(slots=True, frozen=True)
class PageRequest:
    """
    Page request

    Navigation always clamps to the valid page range of the last result.
    """

    page_size: int = 10
    page: int = 1

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    def next_page(self, result: Page) -> Optional["PageRequest"]:
        """
        :return: None if there are no more pages
        """
        if not result.has_next:
            return None
        return PageRequest(page_size=self.page_size, page=result.page + 1)

    def previous_page(self, result: Page) -> Optional["PageRequest"]:
        """
        :return: None if we are at the first page
        """
        if not result.has_previous:
            return None
        return PageRequest(page_size=self.page_size, page=result.page - 1)

    def goto(self, result: Page, page: int) -> "PageRequest":
        """
        Used to construct a request for the specified page, clamped to the pages available in the result.
        """
        return PageRequest(
            page_size=self.page_size,
            page=clamp_page(page, result.total_pages),
        )


def paginate(items: Sequence[T], request: PageRequest) -> Page[T]:
    """
    Slices the requested page out of `items`.

    The requested page is clamped into [1, total_pages]. If `items` is empty, then an empty first page is returned.
    """
    total_pages = math.ceil(len(items) / request.page_size)
    page = clamp_page(request.page, total_pages)
    start = (page - 1) * request.page_size
    return Page(
        items=tuple(items[start : start + request.page_size]),
        page=page,
        page_size=request.page_size,
        total_count=len(items),
    )
