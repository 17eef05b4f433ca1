"""
FastAPI application for the recipe browser.

This module exposes the recipe engine over HTTP for a presentational front end:
- GET /recipes: Resolve the current view/category/search and return one page
- GET /recipes/{recipe_id}: Full-detail recipe for the detail view
- GET /categories: Catalog categories
- GET /favorites, POST /favorites/toggle: Favorites
- GET /cart/view, POST /cart/add, POST /cart/remove: Cart
- GET /notifications/current: Current toast message
- GET /health: Health check

The app serves a single browser session shared by all requests, which hold its
request_lock while they change and read it. The session
is created lazily by get_browser() and can be overridden in tests through
app.dependency_overrides.

Run the API with:
    uvicorn api.main:app --reload

Access API documentation at:
    http://localhost:8000/docs (Swagger UI)
"""

# Import config early to load .env before anything reads environment variables
from recipe_engine.config import configure_logging

import logging
import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, status

from recipe_engine.connectors.mealdb_connector import MealDBConnector
from recipe_engine.errors import CatalogError, NotFound
from recipe_engine.models import Category, Recipe, View
from recipe_engine.session import BrowserPage, BrowserSession
from recipe_engine.storage import build_store
from api.schemas import (
    CartLineOut,
    CartView,
    FavoritesView,
    FavoriteToggleResponse,
    NotificationResponse,
    RecipeDetail,
)

configure_logging()
logger = logging.getLogger(__name__)

# Track app start time for uptime calculation
_APP_START_TIME = time.time()

_browser: Optional[BrowserSession] = None


async def get_browser() -> BrowserSession:
    """
    Get the browser session, creating it on first use.

    Uses TheMealDB connector and the configured key-value store, and restores
    the last search term and page.
    """
    global _browser
    if _browser is None:
        _browser = BrowserSession(MealDBConnector(), build_store())
        _browser.restore()
    return _browser


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _browser is not None:
        await _browser.catalog.aclose()


app = FastAPI(
    title="Recipe Browser API",
    description="Browse, search and filter recipes from TheMealDB with favorites and a cart",
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {"name": "recipes", "description": "Resolve recipe lists and recipe details."},
        {"name": "favorites", "description": "Manage favorite recipes."},
        {"name": "cart", "description": "Manage recipe quantities in the cart."},
        {"name": "health", "description": "Health check and monitoring endpoints."},
    ],
)


def _cart_view(browser: BrowserSession) -> CartView:
    lines = browser.favorites_cart.cart_lines()
    return CartView(
        lines=[CartLineOut(recipe=line.recipe, qty=line.qty) for line in lines],
        total_quantity=browser.cart_count(),
    )


@app.get(
    "/recipes",
    response_model=BrowserPage,
    tags=["recipes"],
    summary="Resolve recipes for a view, category and search term",
)
async def list_recipes(
    view: View = Query(View.HOME, description="home, favorites, cart, category or search"),
    category: Optional[str] = Query(None, description="Category name; '__all__' or empty means none"),
    q: str = Query("", max_length=100, description="Search term (case-insensitive)"),
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: Optional[int] = Query(None, ge=1, le=100, description="Recipes per page"),
    browser: BrowserSession = Depends(get_browser),
) -> BrowserPage:
    """
    Resolve and return one page of recipes.

    Catalog failures never produce an HTTP error here: the page reports
    status "error" (nothing could be loaded) or partial results with
    sources_status describing which source failed. Out-of-range pages are
    clamped to the last page.

    Example:
        ```bash
        GET /recipes?view=category&category=Seafood&q=soup&page=1
        ```
    """
    # The session is shared, so filters, refresh and page read must not interleave
    async with browser.request_lock:
        browser.set_filters(view, category, q)
        if page_size is not None:
            browser.set_page_size(page_size)
        await browser.refresh()
        browser.go_to_page(page)
        result = browser.page()
    logger.info("GET /recipes view=%s category=%r q=%r -> %d/%d recipes (status=%s)",
                view.value, category, q, len(result.recipes), result.total, result.status.value)
    return result


@app.get(
    "/recipes/{recipe_id}",
    response_model=RecipeDetail,
    tags=["recipes"],
    summary="Get a full-detail recipe",
)
async def get_recipe(recipe_id: str, browser: BrowserSession = Depends(get_browser)) -> RecipeDetail:
    """
    Return the hydrated recipe with formatted ingredient lines.

    Raises:
        HTTPException 404: If the catalog has no recipe with this id
        HTTPException 502: If the catalog cannot be reached
    """
    try:
        recipe = await browser.open_recipe(recipe_id)
    except NotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except CatalogError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Error contacting recipe catalog: {e}",
        ) from e

    return RecipeDetail(
        recipe=recipe,
        ingredient_lines=recipe.ingredient_lines,
        is_favorite=browser.favorites_cart.is_favorite(recipe.id),
        cart_quantity=browser.favorites_cart.cart_quantity(recipe.id),
    )


@app.get("/categories", response_model=List[Category], tags=["recipes"])
async def list_categories(browser: BrowserSession = Depends(get_browser)) -> List[Category]:
    """Catalog categories; an empty list when the catalog is unavailable."""
    return await browser.categories()


@app.get("/favorites", response_model=FavoritesView, tags=["favorites"])
def view_favorites(browser: BrowserSession = Depends(get_browser)) -> FavoritesView:
    return FavoritesView(recipes=browser.favorites_cart.favorites())


@app.post(
    "/favorites/toggle",
    response_model=FavoriteToggleResponse,
    tags=["favorites"],
    summary="Add a recipe to favorites, or remove it if present",
)
async def toggle_favorite(recipe: Recipe, browser: BrowserSession = Depends(get_browser)) -> FavoriteToggleResponse:
    async with browser.request_lock:
        action = await browser.toggle_favorite(recipe)
    return FavoriteToggleResponse(action=action, favorites_count=len(browser.favorites_cart.favorites()))


@app.get("/cart/view", response_model=CartView, tags=["cart"])
def view_cart(browser: BrowserSession = Depends(get_browser)) -> CartView:
    return _cart_view(browser)


@app.post(
    "/cart/add",
    response_model=CartView,
    tags=["cart"],
    summary="Add one unit of a recipe to the cart",
)
async def add_to_cart(recipe: Recipe, browser: BrowserSession = Depends(get_browser)) -> CartView:
    async with browser.request_lock:
        await browser.add_to_cart(recipe)
    return _cart_view(browser)


@app.post(
    "/cart/remove",
    response_model=CartView,
    tags=["cart"],
    summary="Remove one unit of a recipe from the cart",
    description="The line is removed entirely when its quantity reaches zero. "
                "Removing a recipe that is not in the cart is a no-op.",
)
async def remove_from_cart(recipe: Recipe, browser: BrowserSession = Depends(get_browser)) -> CartView:
    async with browser.request_lock:
        await browser.remove_from_cart(recipe)
    return _cart_view(browser)


@app.get("/notifications/current", response_model=NotificationResponse, tags=["health"])
def current_notification(browser: BrowserSession = Depends(get_browser)) -> NotificationResponse:
    return NotificationResponse(message=browser.notifier.current())


@app.get("/health", tags=["health"])
def health(browser: BrowserSession = Depends(get_browser)):
    """
    Health check endpoint for monitoring and status checks.

    Always returns 200 OK if the endpoint is reachable.
    """
    return {
        "status": "ok",
        "name": "Recipe Browser API",
        "version": "1.0.0",
        "uptime_seconds": int(time.time() - _APP_START_TIME),
        "store": browser.store.name,
    }


@app.get("/")
def root():
    return {"message": "Recipe Browser API", "docs": "/docs", "health": "/health"}
