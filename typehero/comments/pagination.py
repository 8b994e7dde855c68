"""Page-number window for the comment paginator."""

from dataclasses import dataclass


MAX_VISIBLE_PAGES = 5


def pagination_window(
    current_page: int,
    total_pages: int,
    max_visible: int = MAX_VISIBLE_PAGES,
) -> list[int]:
    """Return the contiguous page numbers to render around ``current_page``.

    The window is centered on the current page and shifted, not shrunk,
    when it would run past either end. Fewer than ``max_visible`` pages
    gives all of them; no pages gives an empty list.

    >>> pagination_window(6, 12)
    [4, 5, 6, 7, 8]
    >>> pagination_window(12, 12)
    [8, 9, 10, 11, 12]
    """
    start = current_page - max_visible // 2
    end = start + max_visible - 1

    if start <= 0:
        start = 1
        end = min(total_pages, max_visible)

    if end > total_pages:
        end = total_pages
        start = max(1, total_pages - max_visible + 1)

    return list(range(start, end + 1))


def previous_page(current_page: int) -> int:
    """Page the "previous" button goes to."""
    return max(1, current_page - 1)


def next_page(current_page: int, total_pages: int) -> int:
    """Page the "next" button goes to."""
    return max(1, min(total_pages, current_page + 1))


@dataclass(frozen=True)
class Pagination:
    """Paginator state for one comment list."""

    current_page: int
    total_pages: int
    pages: list[int]

    @property
    def visible(self) -> bool:
        """The paginator is only shown when there is more than one page."""
        return self.total_pages > 1

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages

    @classmethod
    def build(
        cls,
        current_page: int,
        total_pages: int,
        max_visible: int = MAX_VISIBLE_PAGES,
    ) -> "Pagination":
        return cls(
            current_page=current_page,
            total_pages=total_pages,
            pages=pagination_window(current_page, total_pages, max_visible),
        )
