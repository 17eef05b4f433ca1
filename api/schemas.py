"""
Pydantic schemas for FastAPI request and response models.

Recipes, categories and result pages are served with the engine's own models
(recipe_engine.models.Recipe, Category and recipe_engine.session.BrowserPage);
this module only adds the envelopes specific to the HTTP API.

The schemas include:
- RecipeDetail: hydrated recipe plus display ingredient lines and user state
- FavoriteToggleResponse: action taken and resulting favorites count
- CartLineOut / CartView: cart lines in key order with total quantity
- NotificationResponse: current toast message
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from recipe_engine.cart import FavoriteAction
from recipe_engine.models import Recipe


class RecipeDetail(BaseModel):
    """Full-detail recipe for the detail view."""
    recipe: Recipe
    ingredient_lines: List[str] = Field(default_factory=list, description="'<measure> <ingredient>' lines")
    is_favorite: bool = Field(False, description="Whether the recipe is in favorites")
    cart_quantity: int = Field(0, ge=0, description="Units of this recipe in the cart")


class FavoritesView(BaseModel):
    recipes: List[Recipe] = Field(default_factory=list, description="Favorites in insertion order")


class FavoriteToggleResponse(BaseModel):
    action: FavoriteAction = Field(..., description="'added' or 'removed'")
    favorites_count: int = Field(..., ge=0)


class CartLineOut(BaseModel):
    recipe: Recipe
    qty: int = Field(..., ge=1)


class CartView(BaseModel):
    """
    Response model for viewing the cart.

    Lines keep cart key order; total_quantity is the header badge count.
    """
    lines: List[CartLineOut] = Field(default_factory=list)
    total_quantity: int = Field(0, ge=0)

    model_config = {
        "json_schema_extra": {
            "example": {
                "lines": [
                    {
                        "recipe": {"id": "52772", "name": "Teriyaki Chicken Casserole", "category": "Chicken"},
                        "qty": 2,
                    }
                ],
                "total_quantity": 2,
            }
        }
    }


class NotificationResponse(BaseModel):
    message: Optional[str] = Field(None, description="Visible toast message, or null")
