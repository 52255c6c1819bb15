"""Schema setup for the durable cache table.

The schema version is kept in ``PRAGMA user_version``.
"""

from __future__ import annotations

import logging
import sqlite3

from gallerycache.services.sqlite_cache.operations.base import TABLE_NAME

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    cache_key TEXT PRIMARY KEY,

    -- Opaque serialized payload
    payload BLOB NOT NULL,

    -- Fixed-width UTC ISO strings, so text order is time order
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL,

    -- Statistics
    payload_size INTEGER NOT NULL DEFAULT 0,
    hit_count INTEGER NOT NULL DEFAULT 0,
    last_accessed_at TEXT,

    CHECK (length(cache_key) > 0)
);

CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_expires_at ON {TABLE_NAME}(expires_at);
"""


class MigrationManager:
    """Creates and checks the durable cache schema on one connection."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def get_current_version(self) -> int:
        """Schema version recorded in the database file (0 when new)."""
        row = self.conn.execute("PRAGMA user_version").fetchone()
        return int(row[0]) if row else 0

    def create_tables(self) -> None:
        """Create the cache table and its index if missing."""
        self.conn.executescript(_SCHEMA_SQL)
        if self.get_current_version() < SCHEMA_VERSION:
            # PRAGMA does not accept bound parameters
            self.conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION:d}")
            logger.info("Created durable cache schema v%d", SCHEMA_VERSION)

    def validate_schema(self) -> bool:
        """Return True when the cache table exists at the expected version."""
        try:
            row = self.conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (TABLE_NAME,),
            ).fetchone()
        except sqlite3.Error:
            logger.exception("Durable cache schema check failed")
            return False
        if row is None:
            logger.error("Durable cache table '%s' is missing", TABLE_NAME)
            return False
        return self.get_current_version() >= SCHEMA_VERSION
