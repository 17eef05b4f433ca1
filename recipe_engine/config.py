"""
Configuration management for the recipe browser.

This module centralizes environment variable loading from the .env file at the
project root. It is imported early by the API (api/main.py) so that .env is
loaded before any other code reads the environment.

In production, .env will usually not exist; load_dotenv() then no-ops and the
platform's environment variables are used instead.

Environment Variables:
- MEALDB_BASE_URL: Optional, catalog base URL (defaults to TheMealDB public v1 API)
- CATALOG_TIMEOUT_SECONDS: Optional, per-request timeout (default: 10)
- RECIPES_PER_PAGE: Optional, default page size (default: 20)
- HOME_FEED_MIN_SIZE: Optional, minimum home feed length (default: 120)
- HOME_FEED_PER_CATEGORY_CAP: Optional, max recipes sampled per category (default: 12)
- HOME_FEED_TTL_SECONDS: Optional, home feed cache lifetime (default: 3600)
- CATEGORIES_TTL_SECONDS: Optional, category list lifetime (default: 86400)
- NOTIFICATION_SECONDS: Optional, toast display duration (default: 2)
- RECIPE_STORE_PATH: Optional, JSON key-value store file (default: .recipe_store.json)
- DATABASE_URL: Optional, enables the SQL-backed key-value store
- LOG_LEVEL: Optional, root log level (default: INFO)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env_file() -> None:
    """
    Load environment variables from .env file at project root.

    Safe to call multiple times. Existing environment variables take precedence
    over values in the file.
    """
    # recipe_engine/config.py -> recipe_engine/ -> project root
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env", override=False)


# Load .env file on module import
load_env_file()


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r, using default %d", name, raw, default)
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid number for %s=%r, using default %s", name, raw, default)
        return default


class CatalogConfig:
    """Configuration for the recipe catalog connector."""

    @staticmethod
    def get_base_url() -> str:
        """
        Get the catalog base URL.

        Returns:
            Base URL with trailing slash removed
            (default: "https://www.themealdb.com/api/json/v1/1")
        """
        url = os.getenv("MEALDB_BASE_URL", "https://www.themealdb.com/api/json/v1/1")
        return url.rstrip("/")

    @staticmethod
    def get_timeout_seconds() -> float:
        """Per-request timeout in seconds (default: 10)."""
        return _get_float("CATALOG_TIMEOUT_SECONDS", 10.0)

    @staticmethod
    def get_categories_ttl_seconds() -> float:
        """How long the fetched category list is reused (default: one day)."""
        return _get_float("CATEGORIES_TTL_SECONDS", 86400.0)


class HomeFeedConfig:
    """Configuration for the cached home feed."""

    @staticmethod
    def get_min_size() -> int:
        return _get_int("HOME_FEED_MIN_SIZE", 120)

    @staticmethod
    def get_per_category_cap() -> int:
        return _get_int("HOME_FEED_PER_CATEGORY_CAP", 12)

    @staticmethod
    def get_ttl_seconds() -> float:
        return _get_float("HOME_FEED_TTL_SECONDS", 3600.0)


class BrowserConfig:
    """Configuration for pagination and notifications."""

    @staticmethod
    def get_page_size() -> int:
        return _get_int("RECIPES_PER_PAGE", 20)

    @staticmethod
    def get_notification_seconds() -> float:
        return _get_float("NOTIFICATION_SECONDS", 2.0)


class StorageConfig:
    """Configuration for the persistent key-value store."""

    @staticmethod
    def get_store_path() -> Path:
        return Path(os.getenv("RECIPE_STORE_PATH", ".recipe_store.json"))

    @staticmethod
    def get_database_url() -> Optional[str]:
        """
        Get the database URL.

        Returns:
            DATABASE_URL or None if not set (JSON file storage is used then)
        """
        return os.getenv("DATABASE_URL") or None


def configure_logging() -> None:
    """Apply LOG_LEVEL to the root logger (defaults to INFO)."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )
