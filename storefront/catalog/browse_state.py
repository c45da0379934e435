"""
Browse state: search term, filters, sort, page size and current page.

Any change to what is being shown (filters, search, sort, page size) puts the
shopper back on page 1. Out-of-range page requests are ignored.
"""
from dataclasses import dataclass, field
from typing import Sequence, Tuple

from storefront.catalog.pipeline import CatalogPage, SortKey, filter_products, total_pages_for, visible
from storefront.data.models import Filters, Product
from storefront.utils.logger import get_logger

logger = get_logger("catalog.browse_state")


@dataclass
class BrowseState:
    """Current browsing parameters for one session."""
    page_size_options: Tuple[int, ...] = (12, 24, 36)
    search_term: str = ""
    filters: Filters = field(default_factory=Filters)
    sort_key: SortKey = SortKey.RELEVANCE
    page_size: int = 12
    page_number: int = 1

    def __post_init__(self) -> None:
        self.page_size_options = tuple(self.page_size_options)
        if self.page_size not in self.page_size_options:
            raise ValueError(f"page_size {self.page_size} not in {self.page_size_options}")

    def set_filters(self, filters: Filters) -> None:
        self.filters = filters
        self.page_number = 1

    def set_search_term(self, search_term: str) -> None:
        self.search_term = search_term.strip()
        self.page_number = 1

    def set_sort(self, sort_key: SortKey) -> None:
        self.sort_key = sort_key
        self.page_number = 1

    def set_page_size(self, page_size: int) -> bool:
        """Change the page size; values outside the option set are ignored."""
        if page_size not in self.page_size_options:
            logger.warning(f"Ignoring page size {page_size}; options are {self.page_size_options}")
            return False
        self.page_size = page_size
        self.page_number = 1
        return True

    def reset_context(self, search_term: str = "", filters: Filters = None) -> None:
        """Start a new shopping context (home, category link, new search)."""
        self.search_term = search_term.strip()
        self.filters = filters or Filters()
        self.page_number = 1

    def total_pages(self, catalog: Sequence[Product]) -> int:
        count = len(filter_products(catalog, self.search_term, self.filters))
        return total_pages_for(count, self.page_size)

    def go_to_page(self, catalog: Sequence[Product], page_number: int) -> bool:
        """Move to a page; a page outside 1..total_pages leaves the current page as is."""
        total = self.total_pages(catalog)
        if not 1 <= page_number <= total:
            logger.debug(f"Ignoring page {page_number}; valid range is 1..{total}")
            return False
        self.page_number = page_number
        return True

    def page(self, catalog: Sequence[Product]) -> CatalogPage:
        """The current page of the catalog."""
        return visible(
            catalog,
            self.search_term,
            self.filters,
            self.sort_key,
            self.page_size,
            self.page_number,
        )
