"""
Favorites and cart store with write-through persistence.

This module holds the two mutable side-stores of the browser:
- Favorites: recipe id -> recipe snapshot at the time of favoriting,
  in insertion order
- Cart: recipe id -> CartLine (snapshot + quantity >= 1), in key order

Every mutation is persisted immediately to the injected KeyValueStore.
Persistence failures are logged and swallowed: the in-memory state still
changes and the caller never sees the error.

Quantity invariant: a cart line never holds (or persists) a quantity below 1;
decrementing the last unit removes the line.

Stored shapes (JSON):
- "favorites": [recipe, ...]
- "cart": {recipe_id: {"recipe": recipe, "qty": n}, ...}
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .errors import PersistenceError
from .models import CartLine, Recipe
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

FAVORITES_KEY = "favorites"
CART_KEY = "cart"


class FavoriteAction(str, Enum):
    """What toggle_favorite did, for the user-facing notification."""
    ADDED = "added"
    REMOVED = "removed"


class FavoritesCartStore:
    """
    Favorites set and cart lines for one browser, persisted on every change.

    Only this class mutates favorites and cart; readers get snapshots.
    """

    def __init__(self, store: KeyValueStore) -> None:
        """
        Load favorites and cart from the store.

        Corrupt entries are skipped with a warning rather than failing the load.
        """
        self.store = store
        self._favorites: Dict[str, Recipe] = self._load_favorites()
        self._cart: Dict[str, CartLine] = self._load_cart()
        logger.info("Loaded %d favorites and %d cart lines from %s",
                    len(self._favorites), len(self._cart), store.name)

    def _load_favorites(self) -> Dict[str, Recipe]:
        raw = self.store.get(FAVORITES_KEY, [])
        favorites: Dict[str, Recipe] = {}
        if not isinstance(raw, list):
            logger.warning("Ignoring stored favorites of type %s", type(raw).__name__)
            return favorites
        for item in raw:
            try:
                recipe = Recipe.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping corrupt favorite entry: %s", e)
                continue
            favorites.setdefault(recipe.id, recipe)
        return favorites

    def _load_cart(self) -> Dict[str, CartLine]:
        raw = self.store.get(CART_KEY, {})
        cart: Dict[str, CartLine] = {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring stored cart of type %s", type(raw).__name__)
            return cart
        for recipe_id, item in raw.items():
            try:
                line = CartLine.model_validate(item)
            except ValidationError as e:
                logger.warning("Skipping corrupt cart line %r: %s", recipe_id, e)
                continue
            cart[line.recipe.id] = line
        return cart

    def _persist(self, key: str, value: Any) -> None:
        try:
            self.store.set(key, value)
        except PersistenceError as e:
            # In-memory state already changed; persistence is best-effort
            logger.warning("Failed to persist %r, keeping in-memory state: %s", key, e)

    def _persist_favorites(self) -> None:
        self._persist(FAVORITES_KEY, [r.model_dump(mode="json") for r in self._favorites.values()])

    def _persist_cart(self) -> None:
        self._persist(
            CART_KEY,
            {recipe_id: line.model_dump(mode="json") for recipe_id, line in self._cart.items()},
        )

    # Favorites

    def toggle_favorite(self, recipe: Recipe) -> FavoriteAction:
        """
        Add the recipe to favorites if absent (by id), otherwise remove it.

        Returns:
            FavoriteAction.ADDED or FavoriteAction.REMOVED
        """
        if recipe.id in self._favorites:
            del self._favorites[recipe.id]
            action = FavoriteAction.REMOVED
        else:
            self._favorites[recipe.id] = recipe
            action = FavoriteAction.ADDED
        self._persist_favorites()
        logger.debug("Favorite %s %s", recipe.id, action.value)
        return action

    def is_favorite(self, recipe_id: str) -> bool:
        return recipe_id in self._favorites

    def favorites(self) -> List[Recipe]:
        """Favorite recipes in insertion order."""
        return list(self._favorites.values())

    # Cart

    def cart_increment(self, recipe: Recipe) -> int:
        """
        Add one unit of the recipe to the cart.

        The line's snapshot is replaced by the given recipe.

        Returns:
            The new quantity
        """
        existing = self._cart.get(recipe.id)
        qty = (existing.qty if existing else 0) + 1
        self._cart[recipe.id] = CartLine(recipe=recipe, qty=qty)
        self._persist_cart()
        return qty

    def cart_decrement(self, recipe: Recipe) -> int:
        """
        Remove one unit of the recipe from the cart.

        If the quantity drops to 0 the line is removed entirely. Decrementing
        a recipe that is not in the cart is a no-op.

        Returns:
            The new quantity (0 when the line is gone)
        """
        existing = self._cart.get(recipe.id)
        if existing is None:
            return 0

        qty = existing.qty - 1
        if qty <= 0:
            del self._cart[recipe.id]
            qty = 0
        else:
            self._cart[recipe.id] = CartLine(recipe=existing.recipe, qty=qty)
        self._persist_cart()
        return qty

    def cart_quantity(self, recipe_id: str) -> int:
        line = self._cart.get(recipe_id)
        return line.qty if line else 0

    def cart_line(self, recipe_id: str) -> Optional[CartLine]:
        return self._cart.get(recipe_id)

    def cart_lines(self) -> List[CartLine]:
        """Cart lines in key order."""
        return list(self._cart.values())

    def cart_count(self) -> int:
        """Total number of units across all cart lines."""
        return sum(line.qty for line in self._cart.values())
