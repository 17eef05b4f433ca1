"""
End-to-end tests for the recipe browser API.

These tests exercise the FastAPI endpoints through TestClient with the browser
session dependency overridden, so the catalog is an AsyncMock and state lives
in a MemoryStore. They verify that:
- /recipes resolves views, categories, search terms and pages
- /recipes/{id} maps NotFound to 404 and catalog failures to 502
- Favorites and cart endpoints mutate state and return the updated views
- Notifications and health report the session state
- Overlapping /recipes requests each get the page for their own query
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock, make_hydrated, make_recipe
from recipe_engine.errors import NetworkError
from recipe_engine.models import Category
from recipe_engine.session import BrowserSession
from recipe_engine.storage import MemoryStore
from api.main import app, get_browser


@pytest.fixture
def browser(catalog):
    return BrowserSession(catalog, MemoryStore(), clock=FakeClock(), page_size=20)


@pytest.fixture
def client(browser):
    app.dependency_overrides[get_browser] = lambda: browser
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _recipe_json(recipe):
    return recipe.model_dump(mode="json")


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["store"] == "memory"
        assert data["uptime_seconds"] >= 0

    def test_root(self, client):
        assert client.get("/").json()["docs"] == "/docs"


class TestRecipesEndpoint:
    """Test GET /recipes."""

    def test_category_search(self, client, catalog):
        """Test the Seafood / soup combination through the API."""
        catalog.filter_by_category.return_value = [
            make_recipe("1", name="Seafood Soup"),
            make_recipe("2", name="Fish pie"),
        ]
        catalog.search_by_term.return_value = [
            make_hydrated("4", name="Thai prawn soup", category="Seafood"),
            make_hydrated("5", name="Leek soup", category="Vegetarian"),
        ]

        response = client.get("/recipes", params={"view": "category", "category": "Seafood", "q": "soup"})

        assert response.status_code == 200
        data = response.json()
        assert [r["id"] for r in data["recipes"]] == ["1", "4"]
        assert data["recipes"][0]["category"] == "Seafood"
        assert data["status"] == "ready"
        assert data["category"] == "Seafood"
        assert data["search_term"] == "soup"
        assert data["total"] == 2

    def test_pagination(self, client, catalog):
        catalog.search_by_term.return_value = [make_hydrated(str(i)) for i in range(1, 46)]

        response = client.get("/recipes", params={"view": "search", "q": "x", "page": 3})

        data = response.json()
        assert data["page"] == 3
        assert data["page_count"] == 3
        assert [r["id"] for r in data["recipes"]] == ["41", "42", "43", "44", "45"]

    def test_page_out_of_range_is_clamped(self, client, catalog):
        catalog.search_by_term.return_value = [make_hydrated(str(i)) for i in range(5)]

        data = client.get("/recipes", params={"view": "search", "q": "x", "page": 9, "page_size": 2}).json()

        assert data["page"] == 3
        assert data["page_size"] == 2
        assert [r["id"] for r in data["recipes"]] == ["4"]

    def test_empty_result(self, client):
        data = client.get("/recipes", params={"view": "search", "q": "zzzz"}).json()

        assert data["status"] == "empty"
        assert data["recipes"] == []

    def test_invalid_view_rejected(self, client):
        assert client.get("/recipes", params={"view": "nope"}).status_code == 422

    def test_invalid_page_rejected(self, client):
        assert client.get("/recipes", params={"page": 0}).status_code == 422


class TestRecipeDetail:
    """Test GET /recipes/{recipe_id}."""

    def test_detail(self, client, catalog, browser):
        catalog.lookup_by_id.side_effect = lambda recipe_id: make_hydrated(recipe_id, name="Fish pie")
        browser.favorites_cart.toggle_favorite(make_recipe("52802"))

        response = client.get("/recipes/52802")

        assert response.status_code == 200
        data = response.json()
        assert data["recipe"]["name"] == "Fish pie"
        assert data["ingredient_lines"] == ["1 pinch Salt"]
        assert data["is_favorite"] is True
        assert data["cart_quantity"] == 0

    def test_not_found(self, client):
        response = client.get("/recipes/99999")

        assert response.status_code == 404
        assert "99999" in response.json()["detail"]

    def test_catalog_unavailable(self, client, catalog):
        catalog.lookup_by_id.side_effect = NetworkError("down")

        response = client.get("/recipes/1")

        assert response.status_code == 502
        assert "down" in response.json()["detail"]


class TestCategoriesEndpoint:
    def test_categories(self, client, catalog):
        catalog.list_categories.return_value = [Category(name="Beef"), Category(name="Seafood")]

        response = client.get("/categories")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Beef", "Seafood"]


class TestFavoritesEndpoints:
    """Test favorites toggle and listing."""

    def test_toggle_adds_and_removes(self, client):
        recipe = _recipe_json(make_recipe("1", name="Fish pie"))

        added = client.post("/favorites/toggle", json=recipe)
        assert added.status_code == 200
        assert added.json() == {"action": "added", "favorites_count": 1}
        assert [r["id"] for r in client.get("/favorites").json()["recipes"]] == ["1"]

        removed = client.post("/favorites/toggle", json=recipe)
        assert removed.json() == {"action": "removed", "favorites_count": 0}
        assert client.get("/notifications/current").json() == {"message": "Removed from Favorites"}

    def test_favorites_view_through_recipes(self, client):
        client.post("/favorites/toggle", json=_recipe_json(make_recipe("1", name="Pea soup")))
        client.post("/favorites/toggle", json=_recipe_json(make_recipe("2", name="Bread")))

        data = client.get("/recipes", params={"view": "favorites", "q": "soup"}).json()

        assert [r["id"] for r in data["recipes"]] == ["1"]

    def test_invalid_recipe_body_rejected(self, client):
        assert client.post("/favorites/toggle", json={"name": "no id"}).status_code == 422


class TestCartEndpoints:
    """Test cart add / remove / view."""

    def test_add_accumulates(self, client):
        recipe = _recipe_json(make_recipe("52772", name="Casserole"))

        client.post("/cart/add", json=recipe)
        response = client.post("/cart/add", json=recipe)

        assert response.status_code == 200
        data = response.json()
        assert data["total_quantity"] == 2
        assert data["lines"][0]["qty"] == 2
        assert data["lines"][0]["recipe"]["id"] == "52772"
        assert client.get("/notifications/current").json()["message"] == "Added to Cart"

    def test_remove_drops_line_at_zero(self, client):
        recipe = _recipe_json(make_recipe("1"))
        client.post("/cart/add", json=recipe)

        response = client.post("/cart/remove", json=recipe)

        assert response.json() == {"lines": [], "total_quantity": 0}
        assert client.get("/cart/view").json()["total_quantity"] == 0

    def test_remove_absent_is_noop(self, client):
        response = client.post("/cart/remove", json=_recipe_json(make_recipe("1")))

        assert response.status_code == 200
        assert response.json()["total_quantity"] == 0

    def test_cart_view_through_recipes_hides_missing(self, client, catalog):
        """Test that a cart line no longer in the catalog is hidden but kept."""
        client.post("/cart/add", json=_recipe_json(make_hydrated("id1", name="Casserole")))
        client.post("/cart/add", json=_recipe_json(make_hydrated("id1", name="Casserole")))
        client.post("/cart/add", json=_recipe_json(make_recipe("id2")))

        data = client.get("/recipes", params={"view": "cart"}).json()

        assert [r["id"] for r in data["recipes"]] == ["id1"]
        assert data["sources_status"]["lookup"] == "not_found"
        assert client.get("/cart/view").json()["total_quantity"] == 3


class TestNotifications:
    def test_no_notification(self, client):
        assert client.get("/notifications/current").json() == {"message": None}


class TestOverlappingRequests:
    """Test concurrent /recipes calls against the one shared session."""

    @pytest.mark.asyncio
    async def test_each_response_matches_its_own_query(self, browser, catalog):
        """
        Test a slow search overtaken by a fast one: each response still carries
        the recipes and search term of its own request.
        """
        slow_started = asyncio.Event()
        release = asyncio.Event()

        async def search(term):
            if term == "slow":
                slow_started.set()
                await release.wait()
                return [make_hydrated("s1", name="Slow soup")]
            return [make_hydrated("f1", name="Fast soup")]

        catalog.search_by_term.side_effect = search
        app.dependency_overrides[get_browser] = lambda: browser
        try:
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                slow = asyncio.create_task(client.get("/recipes", params={"view": "search", "q": "slow"}))
                await asyncio.wait_for(slow_started.wait(), timeout=1)
                fast = asyncio.create_task(client.get("/recipes", params={"view": "search", "q": "fast"}))
                for _ in range(10):
                    await asyncio.sleep(0)

                # The fast request waits for the slow one to finish
                assert catalog.search_by_term.await_count == 1

                release.set()
                slow_response, fast_response = await asyncio.wait_for(asyncio.gather(slow, fast), timeout=1)
        finally:
            app.dependency_overrides.clear()

        assert slow_response.json()["search_term"] == "slow"
        assert [r["id"] for r in slow_response.json()["recipes"]] == ["s1"]
        assert fast_response.json()["search_term"] == "fast"
        assert [r["id"] for r in fast_response.json()["recipes"]] == ["f1"]
