"""Base operation class for SQLite cache operations.

This module provides shared functionality for all cache operations:
connection checks, timestamp encoding and LIKE pattern escaping.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from gallerycache.shared.constants import TierName
from gallerycache.shared.errors import create_store_unavailable_error

if TYPE_CHECKING:
    import sqlite3

    from gallerycache.services.cache_models import Clock

logger = logging.getLogger(__name__)

TABLE_NAME = "gallery_cache"
LIKE_ESCAPE = "\\"


def to_db_timestamp(value: datetime) -> str:
    """Encode a datetime as a fixed-width UTC ISO string.

    Fixed width keeps lexicographic order equal to chronological order, so
    expiry comparisons can run in SQL.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_db_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO timestamp column into a timezone-aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def escape_like(prefix: str) -> str:
    """Escape LIKE wildcards so ``prefix`` matches literally."""
    return (
        prefix.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class BaseOperation:
    """Base class for cache operations with shared functionality."""

    def __init__(self, conn: sqlite3.Connection | None, clock: Clock) -> None:
        """Initialize base operation.

        Args:
            conn: SQLite database connection
            clock: Callable returning the current UTC time
        """
        self.conn = conn
        self._clock = clock

    def _connection(self, operation: str) -> sqlite3.Connection:
        """Return the open connection.

        Raises:
            StoreUnavailableError: If the connection is closed or was never opened
        """
        if self.conn is None:
            raise create_store_unavailable_error(TierName.DURABLE.value, operation)
        return self.conn

    def _now(self) -> str:
        return to_db_timestamp(self._clock())
