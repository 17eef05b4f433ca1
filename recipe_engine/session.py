"""
Browser session: the UI-facing state holder of the recipe browser.

BrowserSession owns the handful of state variables a front end changes (view,
selected category, search term, page, page size), wires the engine components
together and exposes the current result as one value (BrowserPage) plus a
status flag that distinguishes loading, empty, error and ready.

Every change of view, category or search term resets the page to 1. Each
refresh() is tagged with a generation number; a resolution that finishes after
a newer one was started is discarded, so the latest request always wins.

Typical flow:
    session = BrowserSession(MealDBConnector(), build_store())
    session.restore()
    session.change_category("Seafood")
    session.search("soup")
    await session.refresh()
    page = session.page()
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .cart import FavoriteAction, FavoritesCartStore
from .config import BrowserConfig, CatalogConfig
from .connectors.base import BaseCatalogConnector
from .errors import CatalogError, PersistenceError
from .home_feed import HomeFeedCache
from .index import RecipeIndex
from .models import Category, Recipe, Resolution, ResolutionContext, View
from .notifications import Notifier
from .pagination import clamp_page, page_count, paginate
from .resolver import ResultResolver
from .storage import KeyValueStore
from .utils.cache import Clock, TTLCache

logger = logging.getLogger(__name__)

# Category selector value meaning "no category"
ALL_CATEGORIES = "__all__"

SEARCH_TERM_KEY = "recipe_search_term"
CURRENT_PAGE_KEY = "recipe_current_page"

MESSAGES = {
    FavoriteAction.ADDED: "Added to Favorites",
    FavoriteAction.REMOVED: "Removed from Favorites",
    "cart_added": "Added to Cart",
    "cart_removed": "Removed from Cart",
}


class ResolutionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class BrowserPage(BaseModel):
    """The current page of results plus the state it was produced for."""
    recipes: List[Recipe] = Field(default_factory=list)
    page: int = 1
    page_size: int
    page_count: int = 0
    total: int = 0
    status: ResolutionStatus = ResolutionStatus.IDLE
    error: Optional[str] = None
    sources_status: Dict[str, str] = Field(default_factory=dict)
    view: View = View.HOME
    category: Optional[str] = None
    search_term: str = ""


class BrowserSession:
    """
    State and behavior behind one recipe browser.

    The catalog and store are injected; the index, home feed, resolver,
    favorites/cart store and notifier are built from them unless provided.
    """

    def __init__(
        self,
        catalog: BaseCatalogConnector,
        store: KeyValueStore,
        clock: Clock = time.time,
        page_size: Optional[int] = None,
        home_feed: Optional[HomeFeedCache] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.index = RecipeIndex()
        self.home_feed = home_feed or HomeFeedCache(catalog, store, clock=clock)
        self.resolver = ResultResolver(catalog, self.home_feed, self.index)
        self.favorites_cart = FavoritesCartStore(store)
        self.notifier = notifier or Notifier(clock=clock)
        self._categories = TTLCache(CatalogConfig.get_categories_ttl_seconds(), clock=clock)

        self.view = View.HOME
        self.category: Optional[str] = None
        self.search_term = ""
        self.current_page = 1
        self.page_size = page_size or BrowserConfig.get_page_size()
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")

        self.recipes: List[Recipe] = []
        self.status = ResolutionStatus.IDLE
        self.error: Optional[str] = None
        self.sources_status: Dict[str, str] = {}
        self.selected_recipe: Optional[Recipe] = None
        self._generation = 0
        self._request_lock: Optional[asyncio.Lock] = None

    @property
    def request_lock(self) -> asyncio.Lock:
        """
        Lock serializing whole request sequences (set filters, refresh, read page).

        Callers sharing one session, such as concurrent HTTP requests, hold it so
        each gets the page for its own filters. Created on first use, inside the
        event loop.
        """
        if self._request_lock is None:
            self._request_lock = asyncio.Lock()
        return self._request_lock

    # State persistence

    def _persist(self, key: str, value: object) -> None:
        try:
            self.store.set(key, value)
        except PersistenceError as e:
            logger.warning("Failed to persist %r: %s", key, e)

    def _set_page(self, page: int) -> None:
        if page != self.current_page:
            self.current_page = page
            self._persist(CURRENT_PAGE_KEY, page)

    def _set_search_term(self, term: str) -> None:
        if term != self.search_term:
            self.search_term = term
            self._persist(SEARCH_TERM_KEY, term)

    def restore(self) -> None:
        """Restore the last search term and page saved in the store."""
        term = self.store.get(SEARCH_TERM_KEY, "")
        page = self.store.get(CURRENT_PAGE_KEY, 1)
        if isinstance(term, str) and term.strip():
            self.search_term = term
            self.view = View.SEARCH
        if isinstance(page, int) and not isinstance(page, bool) and page >= 1:
            self.current_page = page
        logger.info("Restored session state: term=%r page=%d", self.search_term, self.current_page)

    # Transitions

    def context(self) -> ResolutionContext:
        return ResolutionContext(
            view=self.view,
            category=self.category,
            search_term=self.search_term,
            favorites=tuple(self.favorites_cart.favorites()),
            cart=tuple(self.favorites_cart.cart_lines()),
        )

    def change_view(self, view: Union[View, str]) -> None:
        """Switch view; clears search term and category, back to page 1."""
        self.view = View(view)
        self.category = None
        self._set_search_term("")
        self._set_page(1)

    def change_category(self, category: Optional[str]) -> None:
        """
        Select a category.

        None, "" or ALL_CATEGORIES clears the category and returns home.
        Clears the search term, back to page 1.
        """
        if not category or category == ALL_CATEGORIES:
            self.category = None
            self.view = View.HOME
        else:
            self.category = category
            self.view = View.CATEGORY
        self._set_search_term("")
        self._set_page(1)

    def search(self, term: str) -> None:
        """
        Set the search term, back to page 1.

        In favorites/cart views the term only narrows the list shown. Elsewhere
        a non-empty term switches to the search view, and clearing it returns
        to the category (if one is selected) or home.
        """
        self._set_search_term(term)
        if self.view not in (View.FAVORITES, View.CART):
            if term.strip():
                self.view = View.SEARCH
            else:
                self.view = View.CATEGORY if self.category else View.HOME
        self._set_page(1)

    def set_filters(self, view: Union[View, str], category: Optional[str], search_term: str) -> None:
        """
        Apply view, category and term at once (used by the HTTP API).

        The page is reset to 1 only when something actually changed.
        """
        view = View(view)
        category = None if not category or category == ALL_CATEGORIES else category
        if (view, category, search_term) == (self.view, self.category, self.search_term):
            return
        self.view = view
        self.category = category
        self._set_search_term(search_term)
        self._set_page(1)

    def set_page_size(self, page_size: int) -> None:
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        if page_size != self.page_size:
            self.page_size = page_size
            self._set_page(1)

    def go_to_page(self, page: int) -> int:
        """Move to a page, clamped into the current page range. Returns the page."""
        self._set_page(clamp_page(page, page_count(self.recipes, self.page_size)))
        return self.current_page

    # Resolution

    async def refresh(self) -> Optional[Resolution]:
        """
        Re-resolve the current context.

        Returns:
            The applied Resolution, or None if a newer refresh superseded this one
        """
        self._generation += 1
        generation = self._generation
        self.status = ResolutionStatus.LOADING
        try:
            resolution = await self.resolver.resolve(self.context())
        except asyncio.CancelledError:
            if generation == self._generation:
                self.status = ResolutionStatus.IDLE
            raise

        if generation != self._generation:
            logger.debug("Discarding stale resolution (generation %d, current %d)",
                         generation, self._generation)
            return None

        self.recipes = resolution.recipes
        self.sources_status = resolution.sources_status
        self.error = resolution.error
        if resolution.recipes:
            self.status = ResolutionStatus.READY
        elif resolution.failed:
            self.status = ResolutionStatus.ERROR
        else:
            self.status = ResolutionStatus.EMPTY
        self.go_to_page(self.current_page)
        return resolution

    def page(self) -> BrowserPage:
        """The current page of results."""
        return BrowserPage(
            recipes=paginate(self.recipes, self.page_size, self.current_page),
            page=self.current_page,
            page_size=self.page_size,
            page_count=page_count(self.recipes, self.page_size),
            total=len(self.recipes),
            status=self.status,
            error=self.error,
            sources_status=self.sources_status,
            view=self.view,
            category=self.category,
            search_term=self.search_term,
        )

    async def categories(self) -> List[Category]:
        """Catalog categories, fetched once and cached; [] if the catalog fails."""
        cached = self._categories.get("categories")
        if cached is not None:
            return cached
        try:
            categories = await self.catalog.list_categories()
        except CatalogError as e:
            logger.warning("Could not load categories: %s", e)
            return []
        self._categories.set("categories", categories)
        return categories

    # Detail view

    async def open_recipe(self, recipe: Union[Recipe, str]) -> Recipe:
        """
        Select a recipe for the detail view, hydrating it if needed.

        Raises:
            NotFound: If the catalog no longer has the recipe
            NetworkError: If the lookup fails
        """
        if isinstance(recipe, Recipe) and recipe.is_hydrated:
            detail = self.index.upsert(recipe)
        else:
            recipe_id = recipe.id if isinstance(recipe, Recipe) else recipe
            detail = self.index.get_hydrated(recipe_id)
            if detail is None:
                detail = self.index.upsert(await self.catalog.lookup_by_id(recipe_id))
        self.selected_recipe = detail
        return detail

    def close_recipe(self) -> None:
        self.selected_recipe = None

    # Favorites and cart

    async def _refresh_if_showing(self, view: View) -> None:
        if self.view == view:
            await self.refresh()

    async def toggle_favorite(self, recipe: Recipe) -> FavoriteAction:
        action = self.favorites_cart.toggle_favorite(recipe)
        self.notifier.push(MESSAGES[action])
        await self._refresh_if_showing(View.FAVORITES)
        return action

    async def add_to_cart(self, recipe: Recipe) -> int:
        qty = self.favorites_cart.cart_increment(recipe)
        self.notifier.push(MESSAGES["cart_added"])
        await self._refresh_if_showing(View.CART)
        return qty

    async def remove_from_cart(self, recipe: Recipe) -> int:
        qty = self.favorites_cart.cart_decrement(recipe)
        self.notifier.push(MESSAGES["cart_removed"])
        await self._refresh_if_showing(View.CART)
        return qty

    def cart_count(self) -> int:
        return self.favorites_cart.cart_count()
