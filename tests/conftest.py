"""
Shared fixtures for recipe engine tests.

The catalog is an AsyncMock specced on BaseCatalogConnector, so no test ever
reaches the network; tests program it with return_value / side_effect.
"""

from typing import Optional
from unittest.mock import AsyncMock

import pytest

from recipe_engine.connectors.base import BaseCatalogConnector
from recipe_engine.errors import NotFound
from recipe_engine.models import Ingredient, Recipe
from recipe_engine.storage import MemoryStore


class FakeClock:
    """Manually advanced clock returning seconds since epoch."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_recipe(
    recipe_id: str,
    name: Optional[str] = None,
    category: Optional[str] = None,
    instructions: Optional[str] = None,
    **kwargs,
) -> Recipe:
    """Build a recipe; pass instructions to get a hydrated one."""
    return Recipe(
        id=recipe_id,
        name=name or f"Recipe {recipe_id}",
        category=category,
        instructions=instructions,
        **kwargs,
    )


def make_hydrated(recipe_id: str, name: Optional[str] = None, category: Optional[str] = None, **kwargs) -> Recipe:
    return make_recipe(
        recipe_id,
        name=name,
        category=category,
        instructions=kwargs.pop("instructions", "Cook it."),
        ingredients=kwargs.pop("ingredients", (Ingredient(name="Salt", measure="1 pinch"),)),
        **kwargs,
    )


def _not_found(recipe_id: str) -> Recipe:
    raise NotFound(recipe_id)


def make_catalog() -> AsyncMock:
    catalog = AsyncMock(spec=BaseCatalogConnector)
    catalog.source = "fake"
    catalog.list_categories.return_value = []
    catalog.filter_by_category.return_value = []
    catalog.search_by_term.return_value = []
    catalog.lookup_by_id.side_effect = _not_found
    return catalog


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def catalog():
    return make_catalog()
