"""
Catalog query pipeline: filter, sort and paginate.

All four filters (text, category, rating, brand) are applied together in one
pass over the catalog. Facet counts always come from the full catalog so the
sidebar options stay stable while results narrow.
"""
import math
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from storefront.data.models import ALL_CATEGORIES, Filters, Product
from storefront.utils.logger import get_logger

logger = get_logger("catalog.pipeline")


class SortKey(str, Enum):
    RELEVANCE = "relevance"      # catalog order
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"


@dataclass(frozen=True)
class FacetCounts:
    """Sidebar facets computed from the unfiltered catalog."""
    categories: Tuple[Tuple[str, int], ...]   # (category name, count), sorted by name
    brands: Tuple[str, ...]                   # sorted, distinct


@dataclass(frozen=True)
class CatalogPage:
    """One page of visible products plus paging and facet info."""
    items: Tuple[Product, ...]
    total_pages: int
    total_count: int
    page_number: int
    facets: FacetCounts


def matches(product: Product, search_term: str, filters: Filters) -> bool:
    """True if the product satisfies the search term and every filter."""
    term = search_term.lower()
    text_ok = not term or term in product.name.lower() or term in product.brand.lower()
    category_ok = filters.category == ALL_CATEGORIES or product.category == filters.category
    rating_ok = product.rating >= filters.rating
    brand_ok = not filters.brand or product.brand in filters.brand
    return text_ok and category_ok and rating_ok and brand_ok


def filter_products(catalog: Sequence[Product], search_term: str, filters: Filters) -> List[Product]:
    """Products matching the search term and filters, in catalog order."""
    return [p for p in catalog if matches(p, search_term, filters)]


def collation_key(text: str) -> Tuple[str, str]:
    """
    Locale-independent sort key: accents and case are ignored first, then
    used as tie-breakers so the order is total.
    """
    folded = text.casefold()
    base = "".join(c for c in unicodedata.normalize("NFKD", folded) if not unicodedata.combining(c))
    return base, folded


def _name_key(product: Product) -> Tuple[str, str]:
    return collation_key(product.name)


def sort_products(products: Sequence[Product], sort_key: SortKey) -> List[Product]:
    """Return a new, stably sorted list; the input is left untouched."""
    if sort_key == SortKey.PRICE_ASC:
        return sorted(products, key=lambda p: p.price)
    if sort_key == SortKey.PRICE_DESC:
        return sorted(products, key=lambda p: p.price, reverse=True)
    if sort_key == SortKey.NAME_ASC:
        return sorted(products, key=_name_key)
    return list(products)


def compute_facets(catalog: Sequence[Product]) -> FacetCounts:
    """Category counts and brand list over the whole catalog."""
    counts: Dict[str, int] = {}
    for product in catalog:
        name = product.category.value
        counts[name] = counts.get(name, 0) + 1
    categories = tuple(sorted(counts.items(), key=lambda item: collation_key(item[0])))
    brands = tuple(sorted({p.brand for p in catalog}, key=collation_key))
    return FacetCounts(categories=categories, brands=brands)


def total_pages_for(count: int, page_size: int) -> int:
    """ceil(count / page_size), with an empty result still occupying one page."""
    return max(1, math.ceil(count / page_size))


def visible(
    catalog: Sequence[Product],
    search_term: str,
    filters: Filters,
    sort_key: SortKey,
    page_size: int,
    page_number: int,
) -> CatalogPage:
    """
    Compute the visible slice of the catalog.

    Args:
        catalog: Full product set
        search_term: Case-insensitive substring matched against name or brand
        filters: Category / rating / brand filters
        sort_key: Ordering of the filtered products
        page_size: Products per page (>= 1)
        page_number: 1-based page, must be within 1..total_pages

    Returns:
        CatalogPage with the page items, paging info and full-catalog facets
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    filtered = filter_products(catalog, search_term, filters)
    ordered = sort_products(filtered, sort_key)
    total_pages = total_pages_for(len(ordered), page_size)

    if not 1 <= page_number <= total_pages:
        raise ValueError(f"page_number {page_number} outside 1..{total_pages}")

    start = (page_number - 1) * page_size
    items = tuple(ordered[start:start + page_size])

    logger.debug(
        f"visible: term='{search_term}' filters={filters.model_dump()} sort={sort_key.value} "
        f"-> {len(ordered)}/{len(catalog)} matches, page {page_number}/{total_pages}"
    )

    return CatalogPage(
        items=items,
        total_pages=total_pages,
        total_count=len(ordered),
        page_number=page_number,
        facets=compute_facets(catalog),
    )
