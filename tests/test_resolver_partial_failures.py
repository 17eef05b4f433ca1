"""
Tests for partial catalog failure behavior in result resolution.

These tests verify that:
- A failing primary fetch never raises out of resolve(); it reports an error
- Source status is correctly tracked for each consulted source
- Partial failures still return whatever could be resolved
- The API returns HTTP 200 with status "error" when nothing could be loaded
"""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock, make_catalog, make_hydrated, make_recipe
from recipe_engine.errors import MalformedResponse, NetworkError
from recipe_engine.home_feed import HomeFeedCache
from recipe_engine.models import CartLine, ResolutionContext, View
from recipe_engine.resolver import ResultResolver
from recipe_engine.session import BrowserSession
from recipe_engine.storage import MemoryStore
from api.main import app, get_browser


def make_resolver(catalog):
    home_feed = HomeFeedCache(
        catalog, MemoryStore(), clock=FakeClock(), min_size=2, categories=("Beef",), letters=("a",)
    )
    return ResultResolver(catalog, home_feed)


class TestPrimaryFailures:
    """Test that primary-path failures are reported, not raised."""

    @pytest.mark.asyncio
    async def test_category_listing_network_error(self):
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("Timed out calling filter.php")

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.CATEGORY, category="Seafood")
        )

        assert resolution.recipes == []
        assert resolution.failed
        assert "Timed out" in resolution.error
        assert resolution.sources_status == {"category": "error"}

    @pytest.mark.asyncio
    async def test_search_malformed_response(self):
        catalog = make_catalog()
        catalog.search_by_term.side_effect = MalformedResponse("invalid JSON")

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.SEARCH, search_term="soup")
        )

        assert resolution.recipes == []
        assert resolution.error == "invalid JSON"
        assert resolution.sources_status == {"search": "error"}

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_reported(self):
        """Test that a non-catalog exception still does not escape resolve()."""
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = RuntimeError("bug")

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.CATEGORY, category="Beef")
        )

        assert resolution.recipes == []
        assert resolution.error.startswith("Unexpected error")

    @pytest.mark.asyncio
    async def test_home_feed_total_outage(self):
        """Test that an unbuildable home feed yields an empty list plus an error."""
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("down")
        catalog.search_by_term.side_effect = NetworkError("down")

        resolution = await make_resolver(catalog).resolve(ResolutionContext(view=View.HOME))

        assert resolution.recipes == []
        assert resolution.failed
        assert resolution.sources_status == {"home": "error"}


class TestPartialResults:
    """Test that one failing source does not hide results from the others."""

    @pytest.mark.asyncio
    async def test_listing_fails_search_supplement_returned(self):
        """Test search matches of the category are returned when the listing fails."""
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("down")
        catalog.search_by_term.return_value = [
            make_hydrated("4", name="Thai prawn soup", category="Seafood"),
            make_hydrated("5", name="Leek soup", category="Vegetarian"),
        ]

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.CATEGORY, category="Seafood", search_term="soup")
        )

        assert [r.id for r in resolution.recipes] == ["4"]
        assert resolution.error is None
        assert resolution.sources_status == {"category": "error", "search": "ok"}

    @pytest.mark.asyncio
    async def test_both_category_search_sources_fail(self):
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("listing down")
        catalog.search_by_term.side_effect = NetworkError("search down")

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.CATEGORY, category="Seafood", search_term="soup")
        )

        assert resolution.recipes == []
        assert resolution.error == "listing down"
        assert resolution.sources_status == {"category": "error", "search": "error"}

    @pytest.mark.asyncio
    async def test_cart_lookup_network_error_shows_snapshot(self):
        """Test a cart line whose lookup fails falls back to its stored snapshot."""
        catalog = make_catalog()
        catalog.lookup_by_id.side_effect = NetworkError("down")
        stored = make_recipe("1", name="Casserole")

        resolution = await make_resolver(catalog).resolve(
            ResolutionContext(view=View.CART, cart=(CartLine(recipe=stored, qty=2),))
        )

        assert resolution.recipes == [stored]
        assert resolution.error is None
        assert resolution.sources_status == {"cart": "ok", "lookup": "error"}

    @pytest.mark.asyncio
    async def test_home_feed_partial_outage(self):
        """Test a home feed built from the sources that answered is not an error."""
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("down")
        catalog.search_by_term.return_value = [make_hydrated("1", name="Apple pie", category="Dessert")]

        resolution = await make_resolver(catalog).resolve(ResolutionContext(view=View.HOME))

        assert [r.id for r in resolution.recipes] == ["1"]
        assert resolution.error is None


class TestAPIPartialFailures:
    """Test that the API reports catalog failures in the body with HTTP 200."""

    def test_recipes_endpoint_returns_200_on_catalog_outage(self):
        catalog = make_catalog()
        catalog.filter_by_category.side_effect = NetworkError("down")
        browser = BrowserSession(catalog, MemoryStore(), clock=FakeClock())
        app.dependency_overrides[get_browser] = lambda: browser
        try:
            with TestClient(app) as client:
                response = client.get("/recipes", params={"view": "category", "category": "Seafood"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "error"
        assert data["recipes"] == []
        assert data["sources_status"] == {"category": "error"}
        assert data["error"] == "down"

    def test_categories_endpoint_returns_empty_on_outage(self):
        catalog = make_catalog()
        catalog.list_categories.side_effect = NetworkError("down")
        browser = BrowserSession(catalog, MemoryStore(), clock=FakeClock())
        app.dependency_overrides[get_browser] = lambda: browser
        try:
            with TestClient(app) as client, patch("recipe_engine.session.logger") as mock_logger:
                response = client.get("/categories")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == []
        mock_logger.warning.assert_called_once()
