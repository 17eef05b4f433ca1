"""
Result resolution engine: turns a ResolutionContext into an ordered recipe list.

This module is the core of the browser. Given (view, category, search term,
favorites snapshot, cart snapshot) it decides which catalog calls to issue,
runs them (concurrently where they are independent), merges and deduplicates
the heterogeneous result sets and returns one canonical ordered list.

Decision table (exactly one branch per resolution):

    view       category  term       action
    favorites  -         -          favorites verbatim, narrowed by term locally
    cart       -         -          hydrate each line (lookup if needed), drop
                                    NotFound ids, keep key order, narrow by term
    any        set       empty      filter_by_category, stamp category
    any        none      non-empty  search_by_term
    any        set       non-empty  category-constrained search (see below)
    home       none      empty      home feed (cached or freshly built)
    other      none      empty      search_by_term("") (catalog-wide listing)

Category-constrained search: the catalog has no combined "category AND text"
query, so one is synthesized:
    (a) filter_by_category(category), stamp category
    (b) keep entries whose name/instructions/area/tags contain the term
    (c) search_by_term(term), concurrently with (a)
    (d) keep search results whose category equals the selected one
    (e) merge by id: (b) first, then unseen ids from (d)
A failure of (c) is absorbed: the (b) list is returned without an error.

Failures on the primary path never raise out of resolve(): they are logged
and reported through Resolution.error / Resolution.sources_status, with an
empty or partial recipe list.

Resolution flow: BrowserSession.refresh() -> ResultResolver.resolve(context)
-> connector coroutines -> Recipe -> Resolution
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .connectors.base import BaseCatalogConnector
from .errors import CatalogError, NotFound
from .home_feed import HomeFeedCache
from .index import RecipeIndex
from .models import CartLine, Recipe, Resolution, ResolutionContext, View

logger = logging.getLogger(__name__)

# Source names used in Resolution.sources_status
SOURCE_FAVORITES = "favorites"
SOURCE_CART = "cart"
SOURCE_LOOKUP = "lookup"
SOURCE_CATEGORY = "category"
SOURCE_SEARCH = "search"
SOURCE_HOME = "home"

STATUS_OK = "ok"
STATUS_ERROR = "error"
STATUS_NOT_FOUND = "not_found"
STATUS_SKIPPED = "skipped"


def stamp_category(recipes: Iterable[Recipe], category: str) -> List[Recipe]:
    """
    Overwrite the category of every recipe with the queried category.

    filter_by_category results are not guaranteed to carry a category field;
    the query parameter is the source of truth for them.
    """
    return [recipe.with_category(category) for recipe in recipes]


def matches_term(recipe: Recipe, term: str) -> bool:
    """
    Case-insensitive substring match of term against a recipe.

    Checks name, and where present instructions, area and tags. An empty
    term matches everything.
    """
    needle = term.strip().casefold()
    if not needle:
        return True
    for field in (recipe.name, recipe.instructions, recipe.area, recipe.tags):
        if field and needle in field.casefold():
            return True
    return False


def filter_by_term(recipes: Iterable[Recipe], term: str) -> List[Recipe]:
    """Keep recipes matching term (see matches_term), preserving order."""
    return [recipe for recipe in recipes if matches_term(recipe, term)]


def merge_by_id(primary: Sequence[Recipe], supplement: Sequence[Recipe]) -> List[Recipe]:
    """
    Merge two recipe lists by id.

    The first occurrence of an id wins, so primary entries take precedence;
    unseen ids from supplement are appended in their original order.
    Merging primary [a, b] with supplement [b', c] gives [a, b, c].
    """
    seen = set()
    merged: List[Recipe] = []
    for recipe in list(primary) + list(supplement):
        if recipe.id in seen:
            continue
        seen.add(recipe.id)
        merged.append(recipe)
    return merged


def _same_category(left: Optional[str], right: Optional[str]) -> bool:
    if not left or not right:
        return False
    return left.strip().casefold() == right.strip().casefold()


class ResultResolver:
    """
    Resolves a ResolutionContext into a Resolution.

    The resolver holds no UI state: everything it needs comes from the context
    and from the injected catalog connector, home feed cache and recipe index.
    """

    def __init__(
        self,
        catalog: BaseCatalogConnector,
        home_feed: HomeFeedCache,
        index: Optional[RecipeIndex] = None,
    ) -> None:
        self.catalog = catalog
        self.home_feed = home_feed
        self.index = index if index is not None else RecipeIndex()

    async def resolve(self, context: ResolutionContext) -> Resolution:
        """
        Produce the ordered recipe list for a context.

        Args:
            context: The (view, category, search term, favorites, cart) snapshot

        Returns:
            Resolution with:
            - recipes: ordered, deduplicated recipes for the context
            - sources_status: per-source "ok" / "error" / "not_found" / "skipped"
            - error: primary-path failure message, or None

        Ordering:
        - category-only and search-only results keep service order
        - category-constrained search: category matches first, then supplement
        - home feed: sorted by name
        - favorites / cart: store insertion / key order
        """
        term = context.term
        category = context.category or None
        logger.info("Resolve request: view=%s category=%r term=%r", context.view.value, category, term)

        status: Dict[str, str] = {}
        try:
            if context.view == View.FAVORITES:
                status[SOURCE_FAVORITES] = STATUS_OK
                recipes = filter_by_term(context.favorites, term)
            elif context.view == View.CART:
                status[SOURCE_CART] = STATUS_OK
                recipes = filter_by_term(await self._resolve_cart(context.cart, status), term)
            elif category and term:
                recipes = await self._resolve_category_search(category, term, status)
            elif category:
                recipes = await self._resolve_category(category, status)
            elif term:
                recipes = await self._resolve_search(term, status)
            elif context.view == View.HOME:
                recipes = await self._resolve_home(status)
            else:
                recipes = await self._resolve_search("", status)
        except CatalogError as e:
            logger.error("Primary fetch failed for view=%s category=%r term=%r: %s",
                         context.view.value, category, term, e)
            return Resolution(recipes=[], sources_status=status, error=str(e))
        except Exception as e:
            logger.error("Unexpected error resolving view=%s: %s", context.view.value, e, exc_info=True)
            return Resolution(recipes=[], sources_status=status, error=f"Unexpected error: {e}")

        error = None
        if status.get(SOURCE_HOME) == STATUS_ERROR:
            error = "Home feed could not be built: recipe catalog is unavailable"

        logger.info("Resolved %d recipes (status: %s)", len(recipes), status)
        return Resolution(recipes=recipes, sources_status=status, error=error)

    async def _resolve_category(self, category: str, status: Dict[str, str]) -> List[Recipe]:
        try:
            recipes = stamp_category(await self.catalog.filter_by_category(category), category)
        except CatalogError:
            status[SOURCE_CATEGORY] = STATUS_ERROR
            raise
        status[SOURCE_CATEGORY] = STATUS_OK
        self.index.upsert_many(recipes)
        return recipes

    async def _resolve_search(self, term: str, status: Dict[str, str]) -> List[Recipe]:
        try:
            recipes = await self.catalog.search_by_term(term)
        except CatalogError:
            status[SOURCE_SEARCH] = STATUS_ERROR
            raise
        status[SOURCE_SEARCH] = STATUS_OK
        self.index.upsert_many(recipes)
        return recipes

    async def _resolve_home(self, status: Dict[str, str]) -> List[Recipe]:
        recipes = await self.home_feed.get_feed()
        failed = not recipes and self.home_feed.last_build_errors > 0
        status[SOURCE_HOME] = STATUS_ERROR if failed else STATUS_OK
        self.index.upsert_many(recipes)
        return recipes

    async def _resolve_category_search(
        self, category: str, term: str, status: Dict[str, str]
    ) -> List[Recipe]:
        """
        Category-constrained search: category listing narrowed by term, plus
        search results restricted to the category.

        The two catalog calls are independent and run concurrently. A failed
        supplemental search is absorbed; a failed category listing is a
        primary failure, but matching search results are still returned.
        """
        listing, found = await asyncio.gather(
            self.catalog.filter_by_category(category),
            self.catalog.search_by_term(term),
            return_exceptions=True,
        )

        if isinstance(found, BaseException):
            if not isinstance(found, Exception):
                raise found
            logger.warning("Supplemental search %r failed, using category matches only: %s", term, found)
            status[SOURCE_SEARCH] = STATUS_ERROR
            supplement: List[Recipe] = []
        else:
            status[SOURCE_SEARCH] = STATUS_OK
            self.index.upsert_many(found)
            supplement = [r for r in found if _same_category(r.category, category)]

        if isinstance(listing, BaseException):
            if not isinstance(listing, CatalogError):
                raise listing
            status[SOURCE_CATEGORY] = STATUS_ERROR
            if not supplement:
                raise listing
            logger.warning("Category listing %r failed, returning %d search matches: %s",
                           category, len(supplement), listing)
            return supplement

        status[SOURCE_CATEGORY] = STATUS_OK
        stamped = stamp_category(listing, category)
        self.index.upsert_many(stamped)
        matches = filter_by_term(stamped, term)
        merged = merge_by_id(matches, supplement)
        logger.debug("Category search %r/%r: %d listing matches + %d search matches -> %d",
                     category, term, len(matches), len(supplement), len(merged))
        return merged

    async def _resolve_cart(self, lines: Sequence[CartLine], status: Dict[str, str]) -> List[Recipe]:
        """
        Hydrate cart lines, preserving key order.

        Lines without instructions are looked up concurrently (the index is
        consulted first). NotFound drops the line from the result only; other
        lookup failures fall back to the stored snapshot.
        """

        async def hydrate(line: CartLine) -> Recipe:
            if line.recipe.is_hydrated:
                return line.recipe
            cached = self.index.get_hydrated(line.recipe.id)
            if cached is not None:
                return cached
            return await self.catalog.lookup_by_id(line.recipe.id)

        needs_lookup = [line for line in lines if not line.recipe.is_hydrated]
        results = await asyncio.gather(*(hydrate(line) for line in lines), return_exceptions=True)

        recipes: List[Recipe] = []
        lookup_status = STATUS_OK if needs_lookup else STATUS_SKIPPED
        for line, result in zip(lines, results):
            if isinstance(result, NotFound):
                logger.info("Cart recipe %s no longer exists in catalog, hiding it", line.recipe.id)
                if lookup_status != STATUS_ERROR:
                    lookup_status = STATUS_NOT_FOUND
                continue
            if isinstance(result, Exception):
                logger.warning("Could not hydrate cart recipe %s, showing stored snapshot: %s",
                               line.recipe.id, result)
                lookup_status = STATUS_ERROR
                recipes.append(line.recipe)
                continue
            if isinstance(result, BaseException):
                raise result
            recipes.append(self.index.upsert(result))

        status[SOURCE_LOOKUP] = lookup_status
        return recipes
