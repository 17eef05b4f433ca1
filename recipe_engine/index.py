"""
In-memory recipe index keyed by recipe id.

Different catalog endpoints return the same recipe in different shapes: filter
results are summaries (no instructions), search and lookup results are full
detail. The index unifies them by id and always keeps the richer snapshot, so
a recipe hydrated once is not looked up again for the rest of the session.

There is no eviction; the index lives as long as the browser session.
"""

from typing import Dict, Iterable, Optional

from .models import Recipe


class RecipeIndex:
    """Recipe snapshots keyed by id, preferring hydrated snapshots."""

    def __init__(self) -> None:
        self._recipes: Dict[str, Recipe] = {}

    def upsert(self, recipe: Recipe) -> Recipe:
        """
        Store a recipe snapshot and return the snapshot the index now holds.

        An incoming hydrated snapshot replaces a stored summary. Otherwise the
        stored (richer or equal) snapshot is kept.
        """
        existing = self._recipes.get(recipe.id)
        if existing is None or (recipe.is_hydrated and not existing.is_hydrated):
            self._recipes[recipe.id] = recipe
            return recipe
        return existing

    def upsert_many(self, recipes: Iterable[Recipe]) -> None:
        for recipe in recipes:
            self.upsert(recipe)

    def has(self, recipe_id: str) -> bool:
        return recipe_id in self._recipes

    def get(self, recipe_id: str) -> Optional[Recipe]:
        return self._recipes.get(recipe_id)

    def get_hydrated(self, recipe_id: str) -> Optional[Recipe]:
        """Return the stored snapshot only if it is hydrated."""
        recipe = self._recipes.get(recipe_id)
        if recipe is not None and recipe.is_hydrated:
            return recipe
        return None

    def __len__(self) -> int:
        return len(self._recipes)
