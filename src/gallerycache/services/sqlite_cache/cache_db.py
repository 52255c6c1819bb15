"""SQLite cache database facade.

This module provides the durable cache tier: one row per key holding an
opaque payload and an explicit expiry, backed by SQLite in WAL mode.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from gallerycache.services.cache_models import CacheEntry, Clock, StoredEntryInfo, utc_now
from gallerycache.services.sqlite_cache.migration.manager import MigrationManager
from gallerycache.services.sqlite_cache.operations.insert import InsertOperations
from gallerycache.services.sqlite_cache.operations.query import QueryOperations
from gallerycache.services.sqlite_cache.operations.update import UpdateOperations
from gallerycache.shared.constants import TierName
from gallerycache.shared.errors import (
    ErrorContext,
    StoreUnavailableError,
    create_store_unavailable_error,
)
from gallerycache.shared.logging import log_operation_error, log_operation_success

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"


class SQLiteCacheDB:
    """SQLite-based durable cache tier.

    Rows are replaced whole with ``INSERT OR REPLACE``; expiry is checked
    lazily on read. A database that cannot be opened leaves the tier
    unavailable instead of failing construction, so callers degrade to the
    volatile tier.

    Attributes:
        db_path: Path to SQLite database file (or ``:memory:``)
        conn: SQLite database connection, None while unavailable

    Example:
        >>> store = SQLiteCacheDB(Path("cache.db"))
        >>> store.set("bbg4:sidebar:...", b"{}", expires_at)
        >>> store.get("bbg4:sidebar:...")
        b'{}'
        >>> store.close()
    """

    def __init__(
        self,
        db_path: Path | str,
        clock: Clock = utc_now,
        *,
        purge_on_start: bool = True,
    ) -> None:
        """Initialize SQLite cache database.

        Args:
            db_path: Path to SQLite database file
            clock: Callable returning the current UTC time
            purge_on_start: Delete expired rows once the schema is ready
        """
        self.db_path = db_path if str(db_path) == IN_MEMORY else Path(db_path)
        self._clock = clock
        self.conn: sqlite3.Connection | None = None
        self._query_ops = QueryOperations(None, clock)
        self._insert_ops = InsertOperations(None, clock)
        self._update_ops = UpdateOperations(None, clock)
        self._initialize_db(purge_on_start=purge_on_start)

    def _initialize_db(self, *, purge_on_start: bool) -> None:
        """Open the connection, enable WAL mode and create the schema."""
        context = ErrorContext(
            operation="initialize_db",
            additional_data={"db_path": str(self.db_path)},
        )

        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                isolation_level=None,  # Auto-commit mode
            )
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")

            MigrationManager(self.conn).create_tables()
        except (sqlite3.Error, OSError) as e:
            self._drop_connection()
            error = create_store_unavailable_error(
                TierName.DURABLE.value,
                "initialize_db",
                original_error=e,
            )
            log_operation_error(
                logger=logger,
                error=error,
                operation="initialize_db",
                additional_context=context,
                level=logging.WARNING,
            )
            return

        self._bind_operations(self.conn)

        if purge_on_start:
            try:
                purged_count = self.purge_expired()
                if purged_count > 0:
                    logger.info("Purged %d expired cache entries on startup", purged_count)
            except StoreUnavailableError as e:
                logger.warning("Failed to purge expired entries on startup: %s", str(e))

        log_operation_success(
            logger=logger,
            operation="initialize_db",
            duration_ms=0,
            context=context,
        )

    def _bind_operations(self, conn: sqlite3.Connection | None) -> None:
        for ops in (self._query_ops, self._insert_ops, self._update_ops):
            ops.conn = conn

    def _drop_connection(self) -> None:
        if self.conn is not None:
            try:
                self.conn.close()
            except sqlite3.Error:
                logger.debug("Ignoring error while closing a failed connection")
        self.conn = None
        self._bind_operations(None)

    @contextmanager
    def _tier_errors(self, operation: str, key: str | None = None) -> Iterator[None]:
        """Translate sqlite3 failures into ``StoreUnavailableError``."""
        try:
            yield
        except sqlite3.Error as e:
            error = create_store_unavailable_error(
                TierName.DURABLE.value,
                operation,
                original_error=e,
                key=key,
            )
            log_operation_error(logger, error, operation, level=logging.WARNING)
            raise error from e

    @property
    def available(self) -> bool:
        return self.conn is not None

    def get_entry(self, key: str) -> CacheEntry | None:
        """Retrieve the live entry for ``key``.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        with self._tier_errors("get", key):
            return self._query_ops.get_entry(key)

    def get(self, key: str) -> bytes | None:
        """Retrieve the live payload for ``key``.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(
        self,
        key: str,
        payload: bytes,
        expires_at: datetime,
        created_at: datetime | None = None,
    ) -> None:
        """Store ``payload`` under ``key`` until ``expires_at``.

        Raises:
            StoreUnavailableError: If the database cannot be reached
            DomainError: If the key or expiry is invalid
        """
        with self._tier_errors("set", key):
            self._insert_ops.upsert(key, payload, expires_at, created_at)

    def delete(self, key: str) -> bool:
        """Delete the row for ``key``.

        Returns:
            True if deleted, False if not found

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        with self._tier_errors("delete", key):
            return self._update_ops.delete(key)

    def scan_by_prefix(self, prefix: str) -> list[str]:
        """Return every key, live or expired, starting with ``prefix``.

        An empty prefix returns every key in the table.
        """
        with self._tier_errors("scan_by_prefix"):
            return self._query_ops.keys_by_prefix(prefix)

    def describe_entries(self, prefix: str = "") -> list[StoredEntryInfo]:
        """Return row metadata for every key starting with ``prefix``."""
        with self._tier_errors("describe_entries"):
            return self._query_ops.describe(prefix)

    def purge_expired(self) -> int:
        """Purge expired cache entries.

        Returns:
            Number of purged entries
        """
        with self._tier_errors("purge_expired"):
            return self._update_ops.purge_expired()

    def clear(self) -> int:
        """Delete every cache row.

        Returns:
            Number of cleared entries
        """
        with self._tier_errors("clear"):
            return self._update_ops.clear()

    def close(self) -> None:
        """Close database connection; later calls raise ``StoreUnavailableError``."""
        if self.conn:
            self._drop_connection()
            logger.debug("Closed SQLite cache connection: %s", self.db_path)
