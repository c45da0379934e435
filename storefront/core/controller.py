"""
Storefront session controller.

One StorefrontSession owns everything a shopper touches during a session:
the catalog store, browse state, cart ledger, the quiz prompt timer and at
most one open guided selection. Nothing is shared across sessions.
"""
import uuid
from typing import Optional, Tuple

from storefront.cart.ledger import CartLedger, ShippingPolicy
from storefront.catalog.browse_state import BrowseState
from storefront.catalog.pipeline import CatalogPage, SortKey, filter_products
from storefront.core.config import StorefrontConfig, get_config
from storefront.data.catalog_store import CatalogStore
from storefront.data.models import Category, Filters, Product
from storefront.data.session_cache import SessionCache, create_session_cache
from storefront.interview.guided_selection import GuidedSelectionEngine, resolve_context
from storefront.interview.prompt_timer import QuizPromptTimer
from storefront.provider.content_provider import ContentProvider, create_content_provider
from storefront.utils.logger import get_session_logger


class StorefrontSession:
    """
    Top-level session object.

    Navigation that starts a new shopping context (home, category link, new
    search) resets filters and paging, drops the cart discount, closes any
    open guided selection and re-arms the quiz prompt.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        config: Optional[StorefrontConfig] = None,
        provider: Optional[ContentProvider] = None,
        cache: Optional[SessionCache] = None,
    ):
        """
        Initialize the session.

        Args:
            session_id: Session identifier (generated if not provided)
            config: Configuration object. Uses default config if not provided.
            provider: Content provider. Chosen from the environment if not provided.
            cache: Session cache. Built from config.cache_backend if not provided.
        """
        self.session_id = session_id or str(uuid.uuid4())
        self.logger = get_session_logger("core.controller", self.session_id)
        self.config = config or get_config()
        self.provider = provider or create_content_provider(self.config)
        self.cache = cache or create_session_cache(
            self.session_id, self.config.cache_backend, self.config.cache_ttl_seconds
        )

        self.catalog = CatalogStore(self.provider, self.cache, self.config.catalog_cache_key)
        self.cart = CartLedger(ShippingPolicy.from_config(self.config))
        self.browse = BrowseState(
            page_size_options=tuple(self.config.page_size_options),
            page_size=self.config.default_page_size,
        )
        self.prompt_timer = QuizPromptTimer(self.config.prompt_delay_seconds)
        self.guided_selection: Optional[GuidedSelectionEngine] = None
        self.ended = False

        self.logger.info("Storefront session created")

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    async def load_catalog(self) -> Tuple[Product, ...]:
        return await self.catalog.load()

    @property
    def products(self) -> Tuple[Product, ...]:
        return self.catalog.products

    def page(self) -> CatalogPage:
        """The page currently shown for this session's browse state."""
        return self.browse.page(self.products)

    def apply_filters(self, filters: Filters) -> None:
        context_before = self.quiz_context
        self.browse.set_filters(filters)
        if self.quiz_context != context_before:
            self.prompt_timer.on_context_change(self.quiz_context)

    def set_sort(self, sort_key: SortKey) -> None:
        self.browse.set_sort(sort_key)

    def set_page_size(self, page_size: int) -> bool:
        return self.browse.set_page_size(page_size)

    def go_to_page(self, page_number: int) -> bool:
        return self.browse.go_to_page(self.products, page_number)

    # ------------------------------------------------------------------ #
    # Navigation
    # ------------------------------------------------------------------ #

    def go_home(self) -> None:
        """All products, no filters, no search."""
        self._start_context(search_term="", filters=Filters())

    def browse_category(self, category: Category) -> None:
        """Category link: that category only, other filters cleared."""
        self._start_context(search_term="", filters=Filters(category=category))

    def search(self, term: str) -> None:
        """New search across all categories."""
        self._start_context(search_term=term, filters=Filters())

    def _start_context(self, search_term: str, filters: Filters) -> None:
        self.close_guided_selection()
        self.browse.reset_context(search_term=search_term, filters=filters)
        self.cart.reset_discount()
        self.prompt_timer.on_context_change(self.quiz_context)
        self.logger.info(f"New context {self.quiz_context!r}")

    # ------------------------------------------------------------------ #
    # Guided selection
    # ------------------------------------------------------------------ #

    @property
    def quiz_context(self) -> Optional[str]:
        return resolve_context(self.browse.search_term, self.browse.filters)

    def open_guided_selection(self) -> GuidedSelectionEngine:
        """
        Open a guided selection for the current context.

        The candidate set is the filtered (unpaginated) product list at this
        moment; later browsing does not change it.
        """
        context = self.quiz_context
        if context is None:
            raise ValueError("Guided selection needs a search term or a selected category")

        self.close_guided_selection()
        candidates = filter_products(self.products, self.browse.search_term, self.browse.filters)
        self.guided_selection = GuidedSelectionEngine(
            context=context,
            candidates=candidates,
            provider=self.provider,
            cart=self.cart,
            bulk_discount_rate=self.config.bulk_discount_rate,
        )
        self.logger.info(f"Guided selection for '{context}' over {len(candidates)} candidates")
        return self.guided_selection

    def close_guided_selection(self) -> None:
        if self.guided_selection is not None:
            self.guided_selection.close()
            self.guided_selection = None

    # ------------------------------------------------------------------ #

    def end(self) -> None:
        """End the session: close guided selection, stop the prompt, clear the cache."""
        if self.ended:
            return
        self.close_guided_selection()
        self.prompt_timer.cancel()
        self.catalog.clear_cache()
        self.cache.clear()
        self.ended = True
        self.logger.info("Storefront session ended")


async def create_session(
    session_id: Optional[str] = None,
    config: Optional[StorefrontConfig] = None,
    provider: Optional[ContentProvider] = None,
    cache: Optional[SessionCache] = None,
) -> StorefrontSession:
    """
    Factory: build a session and load its catalog.

    Returns:
        StorefrontSession with the catalog loaded
    """
    session = StorefrontSession(session_id=session_id, config=config, provider=provider, cache=cache)
    await session.load_catalog()
    return session
