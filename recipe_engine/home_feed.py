"""
Deterministic, cached "home" recipe feed.

The home feed is a bounded cross-category sample shown on the landing view. It
is built without randomness so that repeated builds against the same catalog
state give the same feed:

1. For each category of a fixed, ordered list: filter_by_category, stamp the
   category, then take every 2nd recipe by position (0, 2, 4, ...) up to a
   per-category cap, skipping ids already in the feed. Stop once the minimum
   size is reached.
2. Still short: for each letter of a fixed, ordered list, search_by_term(letter)
   and add unseen recipes until the minimum is reached.
3. Still short: one catalog-wide search_by_term("") and add unseen recipes
   until the minimum is reached.
4. Sort by name (case-sensitive, id as tie-breaker).
5. Backfill any entry without a category with "Uncategorized".
6. Persist recipes and build timestamp.

A persisted feed is reused while it holds at least the minimum number of
recipes, is younger than the TTL and every entry carries a category. Any
failing request during a build is logged and skipped; a build that gets
nothing at all yields an empty feed instead of raising.
"""

import asyncio
import logging
import time
from typing import Iterable, List, Optional, Sequence, Set

from pydantic import ValidationError

from .config import HomeFeedConfig
from .connectors.base import BaseCatalogConnector
from .errors import CatalogError, PersistenceError
from .models import HomeFeed, Recipe
from .storage import KeyValueStore
from .utils.cache import Clock, is_fresh

logger = logging.getLogger(__name__)

HOME_RECIPES_KEY = "homeRecipes"
HOME_TIMESTAMP_KEY = "homeRecipesTimestamp"

# Curated categories sampled for the home feed, in sampling order
HOME_CATEGORIES = (
    "Beef",
    "Chicken",
    "Dessert",
    "Lamb",
    "Miscellaneous",
    "Pasta",
    "Pork",
    "Seafood",
    "Side",
    "Starter",
    "Vegan",
    "Vegetarian",
)

# Single-letter searches used to top the feed up, in order
HOME_LETTERS = tuple("abcdefghijklmnoprstvwy")

UNCATEGORIZED = "Uncategorized"


def sample_every_other(recipes: Sequence[Recipe], cap: int, seen: Set[str]) -> List[Recipe]:
    """
    Take recipes at even positions (0, 2, 4, ...) up to cap, skipping seen ids.

    `seen` is not modified.
    """
    sampled: List[Recipe] = []
    for recipe in recipes[::2]:
        if len(sampled) >= cap:
            break
        if recipe.id in seen:
            continue
        sampled.append(recipe)
    return sampled


def sort_by_name(recipes: Iterable[Recipe]) -> List[Recipe]:
    return sorted(recipes, key=lambda r: (r.name, r.id))


def backfill_categories(recipes: Iterable[Recipe]) -> List[Recipe]:
    """Give every recipe without a category the "Uncategorized" placeholder."""
    return [
        recipe if recipe.category and recipe.category.strip() else recipe.with_category(UNCATEGORIZED)
        for recipe in recipes
    ]


class HomeFeedCache:
    """
    Builds, persists and reuses the home feed.

    The catalog, store and clock are injected; nothing is read from ambient
    global state.
    """

    def __init__(
        self,
        catalog: BaseCatalogConnector,
        store: KeyValueStore,
        clock: Clock = time.time,
        min_size: Optional[int] = None,
        per_category_cap: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        categories: Sequence[str] = HOME_CATEGORIES,
        letters: Sequence[str] = HOME_LETTERS,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.clock = clock
        self.min_size = min_size if min_size is not None else HomeFeedConfig.get_min_size()
        self.per_category_cap = (
            per_category_cap if per_category_cap is not None else HomeFeedConfig.get_per_category_cap()
        )
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else HomeFeedConfig.get_ttl_seconds()
        self.categories = tuple(categories)
        self.letters = tuple(letters)
        # Number of failed catalog requests during the most recent build
        self.last_build_errors = 0
        self._feed: Optional[HomeFeed] = None
        # Created on first use so the cache can be built outside a running event loop
        self._lock: Optional[asyncio.Lock] = None

    def is_valid(self, feed: HomeFeed) -> bool:
        """
        Check whether a feed can be reused.

        Valid means: at least min_size recipes, younger than the TTL, and every
        recipe has a non-empty category.
        """
        if len(feed.recipes) < self.min_size:
            return False
        if not is_fresh(feed.created_at, self.ttl_seconds, self.clock()):
            return False
        return all(recipe.category and recipe.category.strip() for recipe in feed.recipes)

    def load_cached(self) -> Optional[HomeFeed]:
        """Read the persisted feed, or None if missing or corrupt."""
        raw_recipes = self.store.get(HOME_RECIPES_KEY, None)
        timestamp = self.store.get(HOME_TIMESTAMP_KEY, None)
        if not isinstance(raw_recipes, list) or not isinstance(timestamp, (int, float)):
            return None
        try:
            recipes = [Recipe.model_validate(item) for item in raw_recipes]
        except ValidationError as e:
            logger.warning("Persisted home feed is corrupt, ignoring it: %s", e)
            return None
        return HomeFeed(recipes=recipes, created_at=float(timestamp))

    async def get_feed(self) -> List[Recipe]:
        """
        Return the home feed, reusing a valid cached feed without network calls.

        Returns:
            Name-sorted recipes; may be empty if the catalog is unreachable
        """
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            if self._feed is not None and self.is_valid(self._feed):
                return list(self._feed.recipes)

            cached = self.load_cached()
            if cached is not None and self.is_valid(cached):
                logger.info("Reusing cached home feed (%d recipes)", len(cached.recipes))
                self._feed = cached
                return list(cached.recipes)

            logger.info("Home feed cache missing, expired or invalid; rebuilding")
            feed = await self.build()
            self._persist(feed)
            self._feed = feed
            return list(feed.recipes)

    def invalidate(self) -> None:
        """Forget the in-memory feed; the next get_feed() re-checks the store."""
        self._feed = None

    async def build(self) -> HomeFeed:
        """Build a fresh feed from the catalog (steps 1-5)."""
        self.last_build_errors = 0
        feed: List[Recipe] = []
        seen: Set[str] = set()

        def add(recipes: Iterable[Recipe], limit: Optional[int] = None) -> None:
            for recipe in recipes:
                if limit is not None and len(feed) >= limit:
                    return
                if recipe.id in seen:
                    continue
                seen.add(recipe.id)
                feed.append(recipe)

        for category in self.categories:
            if len(feed) >= self.min_size:
                break
            try:
                listing = await self.catalog.filter_by_category(category)
            except CatalogError as e:
                self.last_build_errors += 1
                logger.warning("Home feed: category %r failed, skipping: %s", category, e)
                continue
            stamped = [recipe.with_category(category) for recipe in listing]
            add(sample_every_other(stamped, self.per_category_cap, seen))
        logger.debug("Home feed after categories: %d recipes", len(feed))

        for letter in self.letters:
            if len(feed) >= self.min_size:
                break
            try:
                found = await self.catalog.search_by_term(letter)
            except CatalogError as e:
                self.last_build_errors += 1
                logger.warning("Home feed: letter search %r failed, skipping: %s", letter, e)
                continue
            add(found, limit=self.min_size)
        logger.debug("Home feed after letters: %d recipes", len(feed))

        if len(feed) < self.min_size:
            try:
                add(await self.catalog.search_by_term(""), limit=self.min_size)
            except CatalogError as e:
                self.last_build_errors += 1
                logger.warning("Home feed: catalog-wide search failed: %s", e)

        recipes = sort_by_name(backfill_categories(feed))
        if len(recipes) < self.min_size:
            logger.warning("Home feed built with %d recipes, below minimum %d (%d failed requests)",
                           len(recipes), self.min_size, self.last_build_errors)
        else:
            logger.info("Home feed built with %d recipes", len(recipes))
        return HomeFeed(recipes=recipes, created_at=self.clock())

    def _persist(self, feed: HomeFeed) -> None:
        try:
            self.store.set(HOME_RECIPES_KEY, [r.model_dump(mode="json") for r in feed.recipes])
            self.store.set(HOME_TIMESTAMP_KEY, feed.created_at)
        except PersistenceError as e:
            logger.warning("Failed to persist home feed: %s", e)
