"""Update operations for SQLite cache.

This module provides delete, purge and clear operations for cache
management.
"""

from __future__ import annotations

import logging

from gallerycache.services.sqlite_cache.operations.base import TABLE_NAME, BaseOperation
from gallerycache.shared.cache_utils import short_key_hash

logger = logging.getLogger(__name__)


class UpdateOperations(BaseOperation):
    """Update/delete operations for cache management."""

    def delete(self, key: str) -> bool:
        """Delete the row for ``key``.

        Returns:
            True if deleted, False if not found
        """
        conn = self._connection("delete")
        cursor = conn.execute(f"DELETE FROM {TABLE_NAME} WHERE cache_key = ?", (key,))  # noqa: S608

        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("Cache row deleted: hash=%s...", short_key_hash(key))
        return deleted

    def purge_expired(self) -> int:
        """Purge rows whose expiry has passed.

        Returns:
            Number of purged rows
        """
        conn = self._connection("purge_expired")
        cursor = conn.execute(
            f"DELETE FROM {TABLE_NAME} WHERE expires_at <= ?",  # noqa: S608
            (self._now(),),
        )

        purged_count = cursor.rowcount
        if purged_count > 0:
            logger.info("Purged %d expired cache entries", purged_count)
        return purged_count

    def clear(self) -> int:
        """Delete every row.

        Returns:
            Number of cleared rows
        """
        conn = self._connection("clear")
        cursor = conn.execute(f"DELETE FROM {TABLE_NAME}")  # noqa: S608
        logger.info("Cleared all durable cache entries")
        return cursor.rowcount
