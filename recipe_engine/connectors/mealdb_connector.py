"""
TheMealDB connector using httpx.

This connector interfaces with TheMealDB's public read-only JSON API to list
categories, look up recipes by id, filter by category and search by free text,
normalizing results into Recipe and Category models.

The connector:
- Uses a shared httpx.AsyncClient with a per-request timeout
- Treats a null/absent collection ({"meals": null}) as an empty result
- Maps httpx transport, timeout and HTTP status errors to NetworkError
- Maps undecodable or wrongly-shaped payloads to MalformedResponse
- Raises NotFound when a lookup matches no recipe
- Does not retry; the resolver decides how to degrade

Endpoints (relative to MEALDB_BASE_URL):
- categories.php
- lookup.php?i={id}
- filter.php?c={category}
- search.php?s={term}
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from recipe_engine.config import CatalogConfig
from recipe_engine.errors import MalformedResponse, NetworkError, NotFound
from recipe_engine.models import Category, Recipe

from .base import BaseCatalogConnector

logger = logging.getLogger(__name__)


class MealDBConnector(BaseCatalogConnector):
    """
    Connector for TheMealDB recipe catalog.

    The underlying AsyncClient can be injected (tests pass one built on
    httpx.MockTransport); otherwise one is created from CatalogConfig.
    """
    source = "mealdb"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            base_url: Catalog base URL (optional, defaults to CatalogConfig.get_base_url())
            timeout: Per-request timeout in seconds (optional, defaults to CatalogConfig)
            client: Preconfigured AsyncClient (optional)
        """
        self.base_url = (base_url or CatalogConfig.get_base_url()).rstrip("/")
        self.timeout = timeout if timeout is not None else CatalogConfig.get_timeout_seconds()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _get(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        """
        Issue a GET request and decode the JSON object it returns.

        Raises:
            NetworkError: On timeout, transport failure or non-2xx status
            MalformedResponse: If the body is not a JSON object
        """
        url = f"{self.base_url}/{endpoint}"
        logger.debug("GET %s params=%r", url, params)
        try:
            response = await self.client.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out calling {endpoint} after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"Catalog returned HTTP {e.response.status_code} for {endpoint}"
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Error calling catalog endpoint {endpoint}: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Catalog endpoint {endpoint} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise MalformedResponse(
                f"Catalog endpoint {endpoint} returned {type(payload).__name__}, expected an object"
            )
        return payload

    @staticmethod
    def _collection(payload: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
        """Extract a list collection; null or absent means empty."""
        items = payload.get(key)
        if items is None:
            return []
        if not isinstance(items, list):
            raise MalformedResponse(f"Expected '{key}' to be a list, got {type(items).__name__}")
        return [item for item in items if isinstance(item, dict)]

    def _to_recipes(self, meals: List[Dict[str, Any]], endpoint: str) -> List[Recipe]:
        recipes: List[Recipe] = []
        for meal in meals:
            try:
                recipes.append(Recipe.from_meal(meal))
            except ValidationError as e:
                # Skip the bad record and keep the rest of the listing
                logger.error("Skipping malformed meal from %s: %s. Item: %s",
                             endpoint, e, str(meal)[:200])
        return recipes

    async def list_categories(self) -> List[Category]:
        payload = await self._get("categories.php", {})
        categories: List[Category] = []
        for item in self._collection(payload, "categories"):
            name = (item.get("strCategory") or "").strip()
            if not name:
                continue
            categories.append(
                Category(
                    name=name,
                    label=name,
                    thumbnail=item.get("strCategoryThumb"),
                    description=item.get("strCategoryDescription"),
                )
            )
        logger.info("Catalog returned %d categories", len(categories))
        return categories

    async def lookup_by_id(self, recipe_id: str) -> Recipe:
        payload = await self._get("lookup.php", {"i": recipe_id})
        recipes = self._to_recipes(self._collection(payload, "meals"), "lookup.php")
        if not recipes:
            raise NotFound(recipe_id)
        return recipes[0]

    async def filter_by_category(self, category: str) -> List[Recipe]:
        payload = await self._get("filter.php", {"c": category})
        recipes = self._to_recipes(self._collection(payload, "meals"), "filter.php")
        logger.info("Category %r returned %d recipes", category, len(recipes))
        return recipes

    async def search_by_term(self, term: str) -> List[Recipe]:
        payload = await self._get("search.php", {"s": term})
        recipes = self._to_recipes(self._collection(payload, "meals"), "search.php")
        logger.info("Search %r returned %d recipes", term, len(recipes))
        return recipes
