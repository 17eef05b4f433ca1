"""
Tests for environment-driven configuration.
"""

import logging
from pathlib import Path

from recipe_engine.config import (
    BrowserConfig,
    CatalogConfig,
    HomeFeedConfig,
    StorageConfig,
    configure_logging,
)


class TestConfigDefaults:
    """Test defaults when nothing is set."""

    def test_defaults(self, monkeypatch):
        for name in ("MEALDB_BASE_URL", "CATALOG_TIMEOUT_SECONDS", "RECIPES_PER_PAGE",
                     "HOME_FEED_MIN_SIZE", "HOME_FEED_PER_CATEGORY_CAP", "HOME_FEED_TTL_SECONDS",
                     "NOTIFICATION_SECONDS", "RECIPE_STORE_PATH", "DATABASE_URL"):
            monkeypatch.delenv(name, raising=False)

        assert CatalogConfig.get_base_url() == "https://www.themealdb.com/api/json/v1/1"
        assert CatalogConfig.get_timeout_seconds() == 10.0
        assert BrowserConfig.get_page_size() == 20
        assert BrowserConfig.get_notification_seconds() == 2.0
        assert HomeFeedConfig.get_min_size() == 120
        assert HomeFeedConfig.get_per_category_cap() == 12
        assert HomeFeedConfig.get_ttl_seconds() == 3600.0
        assert StorageConfig.get_store_path() == Path(".recipe_store.json")
        assert StorageConfig.get_database_url() is None


class TestConfigOverrides:
    def test_values_from_environment(self, monkeypatch):
        monkeypatch.setenv("RECIPES_PER_PAGE", "12")
        monkeypatch.setenv("HOME_FEED_TTL_SECONDS", "60.5")
        monkeypatch.setenv("MEALDB_BASE_URL", "http://localhost:9000/")

        assert BrowserConfig.get_page_size() == 12
        assert HomeFeedConfig.get_ttl_seconds() == 60.5
        assert CatalogConfig.get_base_url() == "http://localhost:9000"

    def test_invalid_numbers_fall_back(self, monkeypatch, caplog):
        """Test that unparseable numbers use the default and log a warning."""
        monkeypatch.setenv("RECIPES_PER_PAGE", "twenty")
        monkeypatch.setenv("CATALOG_TIMEOUT_SECONDS", "soon")

        with caplog.at_level(logging.WARNING, logger="recipe_engine.config"):
            assert BrowserConfig.get_page_size() == 20
            assert CatalogConfig.get_timeout_seconds() == 10.0

        assert "RECIPES_PER_PAGE" in caplog.text

    def test_empty_database_url_is_unset(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "")
        assert StorageConfig.get_database_url() is None

    def test_configure_logging_does_not_raise_on_unknown_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        configure_logging()
