"""
Catalog store: the session's product set.

Cache-then-fetch: a snapshot in the session cache is restored as-is; otherwise
the catalog is fetched once from the content provider and written back to the
cache. The product set is read-only after loading.
"""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from storefront.data.models import Product
from storefront.data.session_cache import SessionCache
from storefront.provider.content_provider import ContentProvider
from storefront.utils.logger import get_logger

logger = get_logger("data.catalog_store")


class CatalogStoreError(RuntimeError):
    """Raised when the catalog is read before it has been loaded."""


@dataclass
class CatalogStore:
    """
    Holds the full product set for one session.

    Args:
        provider: Content provider used on a cache miss.
        cache: Per-session cache holding the JSON snapshot.
        cache_key: Fixed key the snapshot is stored under.
    """

    provider: ContentProvider
    cache: SessionCache
    cache_key: str = "products"
    _products: Optional[Tuple[Product, ...]] = field(default=None, init=False, repr=False)
    _by_id: Dict[str, Product] = field(default_factory=dict, init=False, repr=False)
    _load_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def is_loaded(self) -> bool:
        return self._products is not None

    @property
    def products(self) -> Tuple[Product, ...]:
        if self._products is None:
            raise CatalogStoreError("Catalog has not been loaded yet")
        return self._products

    def get(self, product_id: str) -> Optional[Product]:
        """Look up a product by id; None if unknown or not loaded."""
        return self._by_id.get(product_id)

    async def load(self) -> Tuple[Product, ...]:
        """Load the catalog once per session (cache first, then provider)."""
        async with self._load_lock:
            if self._products is not None:
                return self._products

            cached = self._read_cache()
            if cached is not None:
                logger.info(f"Restored {len(cached)} products from session cache")
                self._set_products(cached)
                return cached

            products = tuple(await self.provider.fetch_catalog())
            self._set_products(products)
            self._write_cache(products)
            logger.info(f"Loaded {len(products)} products from provider")
            return products

    def clear_cache(self) -> None:
        """Drop the cached snapshot (session end)."""
        self.cache.delete(self.cache_key)

    def _set_products(self, products: Tuple[Product, ...]) -> None:
        self._products = products
        self._by_id = {p.id: p for p in products}

    def _read_cache(self) -> Optional[Tuple[Product, ...]]:
        raw = self.cache.get(self.cache_key)
        if raw is None:
            return None
        try:
            return tuple(Product.model_validate(item) for item in json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning(f"Discarding unreadable catalog snapshot: {e}")
            self.cache.delete(self.cache_key)
            return None

    def _write_cache(self, products: Tuple[Product, ...]) -> None:
        payload = [p.model_dump(mode="json", by_alias=True) for p in products]
        self.cache.set(self.cache_key, json.dumps(payload))
