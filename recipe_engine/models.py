"""
Recipe, cart and resolution models for the recipe engine.

This module defines the canonical schemas used throughout the engine. The
catalog connector maps raw catalog payloads into Recipe first (via
Recipe.from_meal); everything downstream (index, resolver, stores, API) works
on these models only.

Recipe snapshots are immutable. Re-fetching the same id may yield a richer
(hydrated) snapshot, which replaces the stored one instead of being merged
into it. Use model_copy(update=...) to derive a modified snapshot, e.g. when
stamping a category.

Catalog field mapping (TheMealDB shape):
- idMeal -> id, strMeal -> name, strCategory -> category, strArea -> area
- strTags -> tags, strInstructions -> instructions, strMealThumb -> thumbnail
- strIngredient1..20 / strMeasure1..20 -> ingredients
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# The catalog exposes at most 20 ingredient/measure slots per recipe
MAX_INGREDIENTS = 20


def _clean(value: Any) -> Optional[str]:
    """Return a stripped string, or None for missing/blank values."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Ingredient(BaseModel):
    """One (ingredient, measure) pair of a recipe."""
    name: str = Field(..., description="Ingredient name")
    measure: Optional[str] = Field(None, description="Measure, e.g. '1 tbs' (may be absent)")

    model_config = ConfigDict(frozen=True)

    @property
    def display(self) -> str:
        """Ingredient line as shown in the detail view ("<measure> <name>")."""
        return f"{self.measure or ''} {self.name}".strip()


class Recipe(BaseModel):
    """
    A recipe snapshot from the catalog.

    A recipe with non-blank instructions is "hydrated" (full-detail shape); one
    without is a summary and needs a lookup before it is shown in detail.
    """
    id: str = Field(..., min_length=1, description="Stable catalog identifier (idMeal)")
    name: str = Field(..., description="Recipe name")
    category: Optional[str] = Field(None, description="Category name (absent from filter results)")
    area: Optional[str] = Field(None, description="Cuisine / area, e.g. 'Italian'")
    tags: Optional[str] = Field(None, description="Comma-separated freeform tags")
    instructions: Optional[str] = Field(None, description="Cooking instructions (full-detail only)")
    thumbnail: Optional[str] = Field(None, description="Thumbnail image URL")
    ingredients: Tuple[Ingredient, ...] = Field(default_factory=tuple, description="Up to 20 ingredients")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "52772",
                "name": "Teriyaki Chicken Casserole",
                "category": "Chicken",
                "area": "Japanese",
                "tags": "Meat,Casserole",
                "instructions": "Preheat oven to 350 F...",
                "thumbnail": "https://www.themealdb.com/images/media/meals/wvpsxx1468256321.jpg",
                "ingredients": [{"name": "soy sauce", "measure": "3/4 cup"}],
            }
        },
    )

    @property
    def is_hydrated(self) -> bool:
        """True when the snapshot carries instructions (full-detail shape)."""
        return bool(self.instructions and self.instructions.strip())

    @property
    def ingredient_lines(self) -> List[str]:
        """Ingredient lines formatted for display."""
        return [ingredient.display for ingredient in self.ingredients]

    def with_category(self, category: str) -> "Recipe":
        """Return a copy stamped with the given category."""
        return self.model_copy(update={"category": category})

    @classmethod
    def from_meal(cls, meal: Dict[str, Any]) -> "Recipe":
        """
        Build a Recipe from a raw catalog meal payload.

        Blank ingredient slots are skipped; a measure without its ingredient
        is dropped.

        Args:
            meal: Raw meal dictionary as returned by the catalog

        Returns:
            Recipe instance

        Raises:
            pydantic.ValidationError: If the payload lacks an id or a name
        """
        ingredients = []
        for i in range(1, MAX_INGREDIENTS + 1):
            name = _clean(meal.get(f"strIngredient{i}"))
            if not name:
                continue
            ingredients.append(Ingredient(name=name, measure=_clean(meal.get(f"strMeasure{i}"))))

        return cls(
            id=_clean(meal.get("idMeal")) or "",
            name=_clean(meal.get("strMeal")) or "",
            category=_clean(meal.get("strCategory")),
            area=_clean(meal.get("strArea")),
            tags=_clean(meal.get("strTags")),
            instructions=_clean(meal.get("strInstructions")),
            thumbnail=_clean(meal.get("strMealThumb")),
            ingredients=tuple(ingredients),
        )


class Category(BaseModel):
    """A catalog category. Only the name is used by the engine."""
    name: str = Field(..., description="Category name, e.g. 'Seafood'")
    label: Optional[str] = Field(None, description="Display label (defaults to name)")
    thumbnail: Optional[str] = Field(None, description="Category thumbnail URL")
    description: Optional[str] = Field(None, description="Category description")

    model_config = ConfigDict(frozen=True)

    @property
    def display_label(self) -> str:
        return self.label or self.name


class CartLine(BaseModel):
    """Cart line: recipe snapshot plus a quantity that is always >= 1."""
    recipe: Recipe
    qty: int = Field(1, ge=1, description="Quantity in cart")

    model_config = ConfigDict(frozen=True)


class View(str, Enum):
    """Active view of the browser."""
    HOME = "home"
    FAVORITES = "favorites"
    CART = "cart"
    CATEGORY = "category"
    SEARCH = "search"


class ResolutionContext(BaseModel):
    """
    The sole input of the result resolver.

    Carries snapshots of favorites and cart so a resolution is a function of
    this value only (plus the injected catalog).
    """
    view: View = View.HOME
    category: Optional[str] = None
    search_term: str = ""
    favorites: Tuple[Recipe, ...] = Field(default_factory=tuple)
    cart: Tuple[CartLine, ...] = Field(default_factory=tuple)

    model_config = ConfigDict(frozen=True)

    @property
    def term(self) -> str:
        return self.search_term.strip()


class Resolution(BaseModel):
    """
    Output of one resolution.

    sources_status maps each source consulted to "ok", "error", "not_found"
    or "skipped", so partial failures are visible without exceptions.
    """
    recipes: List[Recipe] = Field(default_factory=list)
    sources_status: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = Field(None, description="Primary-path failure message, if any")

    @property
    def failed(self) -> bool:
        return self.error is not None


class HomeFeed(BaseModel):
    """A built home feed plus its creation timestamp (seconds since epoch)."""
    recipes: List[Recipe] = Field(default_factory=list)
    created_at: float = Field(..., description="Build time used for TTL checks")
