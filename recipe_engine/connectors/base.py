"""
Base connector abstract class for recipe catalog integrations.

This module defines the abstract base class every catalog connector implements.
It keeps the engine independent of a concrete catalog service: the resolver,
home feed and browser session only talk to this interface, so tests can inject
doubles and another catalog can be added without touching the engine.

All connectors must:
- Expose one coroutine per endpoint shape (categories, lookup, filter, search)
- Normalize raw payloads into Recipe / Category models
- Raise NetworkError, NotFound or MalformedResponse (never library exceptions)
- Not retry; transient failures propagate to the caller
"""

from abc import ABC, abstractmethod
from typing import List

from recipe_engine.models import Category, Recipe


class BaseCatalogConnector(ABC):
    """
    Abstract base class for all recipe catalog connectors.

    Attributes:
        source: String identifier for the catalog (e.g., "mealdb")
    """
    source: str

    @abstractmethod
    async def list_categories(self) -> List[Category]:
        """
        List the catalog's categories.

        Raises:
            NetworkError: On transport or HTTP failure
            MalformedResponse: On unexpected payload shape
        """
        pass

    @abstractmethod
    async def lookup_by_id(self, recipe_id: str) -> Recipe:
        """
        Fetch the full-detail recipe for an id.

        Raises:
            NotFound: If the catalog has no recipe with this id
            NetworkError: On transport or HTTP failure
        """
        pass

    @abstractmethod
    async def filter_by_category(self, category: str) -> List[Recipe]:
        """
        List summary recipes of a category.

        Results are NOT guaranteed to carry a category; callers stamp it.
        """
        pass

    @abstractmethod
    async def search_by_term(self, term: str) -> List[Recipe]:
        """
        Free-text search returning full-detail recipes.

        An empty term lists the whole catalog.
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the connector (optional)."""
        return None
