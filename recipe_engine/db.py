"""
Database persistence layer for the key-value store.

This module provides an optional SQL-backed table for the browser's persistent
state (favorites, cart, home feed cache). It is enabled by setting the
DATABASE_URL environment variable. If DATABASE_URL is not set, db_is_enabled()
returns False and storage falls back to the JSON file store.

When DATABASE_URL is set:
- Values are stored as JSON text in the kv_entries table, one row per key

When DATABASE_URL is not set:
- db_is_enabled() returns False
- All DB operations are skipped
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.sql import func

from .config import StorageConfig

logger = logging.getLogger(__name__)

Base = declarative_base()

# Engine and session factory, created lazily by _init_engine()
engine = None
SessionLocal = None


class KeyValueRow(Base):
    """Key-value table - one row per store key, value serialized as JSON."""
    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


def _init_engine(database_url: Optional[str] = None) -> None:
    global engine, SessionLocal
    url = database_url or StorageConfig.get_database_url()
    if not url:
        return
    try:
        engine = create_engine(url, pool_pre_ping=True, echo=False)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info("Database connection initialized (DATABASE_URL is set)")
    except Exception as e:
        logger.error("Failed to initialize database connection: %s", e)
        engine = None
        SessionLocal = None


def db_is_enabled() -> bool:
    """
    Check if database persistence is enabled.

    Returns:
        True if an engine was created from DATABASE_URL, False otherwise
    """
    return engine is not None and SessionLocal is not None


def init_db(database_url: Optional[str] = None) -> None:
    """
    Create the engine (if needed) and the kv_entries table.

    Safe to call multiple times - only missing tables are created.

    Raises:
        Exception: If table creation fails
    """
    if not db_is_enabled():
        _init_engine(database_url)
    if not db_is_enabled():
        logger.debug("Database not enabled, skipping init_db()")
        return

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables initialized (or already exist)")
    except Exception as e:
        logger.error("Failed to initialize database tables: %s", e)
        raise


def get_db_session():
    """
    Get a database session.

    Raises:
        RuntimeError: If database is not enabled
    """
    if not db_is_enabled():
        raise RuntimeError("Database is not enabled. Set DATABASE_URL environment variable.")
    return SessionLocal()


def db_get_value(key: str) -> Optional[Any]:
    """
    Read and decode the JSON value stored under key.

    Returns:
        The decoded value, or None if the key is absent

    Raises:
        ValueError: If the stored text is not valid JSON
    """
    db = get_db_session()
    try:
        row = db.get(KeyValueRow, key)
        if row is None:
            return None
        return json.loads(row.value)
    finally:
        db.close()


def db_set_value(key: str, value: Any) -> None:
    """Insert or replace the JSON value stored under key."""
    db = get_db_session()
    try:
        text = json.dumps(value, ensure_ascii=False)
        row = db.get(KeyValueRow, key)
        if row is None:
            db.add(KeyValueRow(key=key, value=text))
        else:
            row.value = text
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error("Error writing key %r to database: %s", key, e)
        raise
    finally:
        db.close()
