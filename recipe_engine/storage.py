"""
Persistent key-value stores for favorites, cart and the home feed cache.

All stores share one small contract:
- get(key, fallback) returns the stored JSON value, or the caller-supplied
  fallback when the key is missing, unreadable or corrupt. It never raises.
- set(key, value) persists a JSON-serializable value and raises
  PersistenceError when it cannot.

Implementations:
- MemoryStore: process-local dict (tests, throwaway sessions)
- JsonFileStore: one JSON document on disk, replaced atomically on write
- DatabaseStore: kv_entries table via recipe_engine.db (DATABASE_URL set)

build_store() picks DatabaseStore when the database is enabled and falls back
to JsonFileStore otherwise.
"""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .config import StorageConfig
from .errors import PersistenceError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """String-keyed store of JSON-serializable values."""

    name: str = "store"

    @abstractmethod
    def get(self, key: str, fallback: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-memory store. Values are deep-copied in and out like a real store."""

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, fallback: Any = None) -> Any:
        if key not in self._data:
            return fallback
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        try:
            # Reject values a persistent store could not hold either
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key!r} is not JSON-serializable: {e}") from e
        self._data[key] = copy.deepcopy(value)


class JsonFileStore(KeyValueStore):
    """
    Store backed by a single JSON object on disk.

    The whole document is re-read on every get so that several processes
    sharing the file see each other's writes (last writer wins).
    """

    name = "json_file"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read store file %s: %s", self.path, e)
            return {}
        if not isinstance(document, dict):
            logger.warning("Store file %s does not hold a JSON object, ignoring it", self.path)
            return {}
        return document

    def get(self, key: str, fallback: Any = None) -> Any:
        document = self._read_document()
        if key not in document or document[key] is None:
            return fallback
        return document[key]

    def set(self, key: str, value: Any) -> None:
        document = self._read_document()
        document[key] = value
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            self._discard(tmp_path)
            raise PersistenceError(f"Failed to write {key!r} to {self.path}: {e}") from e

    @staticmethod
    def _discard(tmp_path: Path) -> None:
        """Remove a partially written temp file, if any."""
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove temp file %s: %s", tmp_path, e)


class DatabaseStore(KeyValueStore):
    """Store backed by the kv_entries table (see recipe_engine.db)."""

    name = "database"

    def get(self, key: str, fallback: Any = None) -> Any:
        from .db import db_get_value

        try:
            value = db_get_value(key)
        except Exception as e:
            logger.warning("Database read for %r failed, using fallback: %s", key, e)
            return fallback
        return fallback if value is None else value

    def set(self, key: str, value: Any) -> None:
        from .db import db_set_value

        try:
            db_set_value(key, value)
        except Exception as e:
            raise PersistenceError(f"Failed to write {key!r} to database: {e}") from e


def build_store() -> KeyValueStore:
    """
    Build the configured store.

    Uses the database if DATABASE_URL is set and the table can be initialized,
    otherwise the JSON file at RECIPE_STORE_PATH.
    """
    from .db import db_is_enabled, init_db

    if StorageConfig.get_database_url():
        try:
            init_db()
            if db_is_enabled():
                return DatabaseStore()
        except Exception as e:
            logger.warning("Database initialization failed, using JSON file storage: %s", e)

    path = StorageConfig.get_store_path()
    logger.info("Using JSON file store at %s", path)
    return JsonFileStore(path)
