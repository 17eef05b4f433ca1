"""
Error taxonomy for the recipe engine.

Catalog-side failures derive from CatalogError so callers can catch the whole
family at a boundary, while still distinguishing a missing record (NotFound)
from a transport failure (NetworkError) or an unexpected payload
(MalformedResponse). Store failures are reported separately as PersistenceError.
"""


class CatalogError(Exception):
    """Base class for failures talking to the recipe catalog service."""
    pass


class NetworkError(CatalogError):
    """
    Raised when the catalog cannot be reached or answers with an HTTP error.

    Timeouts are reported as NetworkError as well.
    """
    pass


class NotFound(CatalogError):
    """Raised when a valid request matches no record (e.g. unknown recipe id)."""

    def __init__(self, recipe_id: str) -> None:
        super().__init__(f"Recipe {recipe_id!r} not found in catalog")
        self.recipe_id = recipe_id


class MalformedResponse(CatalogError):
    """Raised when the catalog answers with a payload of unexpected shape."""
    pass


class PersistenceError(Exception):
    """Raised when the key-value store cannot write a value."""
    pass
