"""Query operations for SQLite cache.

This module provides read operations: single-entry lookup with lazy
expiry, prefix scans and row metadata for the admin listing.
"""

from __future__ import annotations

import logging

from gallerycache.services.cache_models import CacheEntry, StoredEntryInfo
from gallerycache.services.sqlite_cache.operations.base import (
    LIKE_ESCAPE,
    TABLE_NAME,
    BaseOperation,
    escape_like,
    parse_db_timestamp,
)
from gallerycache.shared.cache_utils import short_key_hash
from gallerycache.shared.constants import TierName

logger = logging.getLogger(__name__)


class QueryOperations(BaseOperation):
    """Query operations for cache retrieval."""

    def get_entry(self, key: str) -> CacheEntry | None:
        """Retrieve the live entry for ``key``.

        Expired rows are reported as a miss but left in place; the next
        write for the key or ``purge_expired`` removes them.

        Args:
            key: Cache key identifier

        Returns:
            CacheEntry if found and not expired, None otherwise
        """
        conn = self._connection("get")

        sql = f"""
        SELECT cache_key, payload, created_at, expires_at
        FROM {TABLE_NAME}
        WHERE cache_key = ?
        """  # noqa: S608
        row = conn.execute(sql, (key,)).fetchone()
        if row is None:
            return None

        cache_key, payload, created_at_str, expires_at_str = row
        try:
            entry = CacheEntry(
                key=cache_key,
                value=bytes(payload),
                created_at=parse_db_timestamp(created_at_str),  # type: ignore[arg-type]
                expires_at=parse_db_timestamp(expires_at_str),  # type: ignore[arg-type]
                tier_origin=TierName.DURABLE,
            )
        except (ValueError, TypeError) as e:
            logger.warning(
                "Dropping unreadable cache row for key hash %s...: %s",
                short_key_hash(key),
                str(e),
            )
            conn.execute(f"DELETE FROM {TABLE_NAME} WHERE cache_key = ?", (key,))  # noqa: S608
            return None

        if entry.is_expired(self._clock()):
            logger.debug("Cache row expired for key hash %s...", short_key_hash(key))
            return None

        self._update_access_stats(key)
        return entry

    def _update_access_stats(self, key: str) -> None:
        """Update hit count and last access time for a row."""
        update_sql = f"""
        UPDATE {TABLE_NAME}
        SET hit_count = hit_count + 1,
            last_accessed_at = ?
        WHERE cache_key = ?
        """  # noqa: S608
        self._connection("get").execute(update_sql, (self._now(), key))

    def keys_by_prefix(self, prefix: str) -> list[str]:
        """Return every key, live or expired, starting with ``prefix``."""
        conn = self._connection("scan_by_prefix")
        if not prefix:
            cursor = conn.execute(f"SELECT cache_key FROM {TABLE_NAME} ORDER BY cache_key")  # noqa: S608
        else:
            cursor = conn.execute(
                f"SELECT cache_key FROM {TABLE_NAME} "  # noqa: S608
                f"WHERE cache_key LIKE ? ESCAPE '{LIKE_ESCAPE}' ORDER BY cache_key",
                (escape_like(prefix) + "%",),
            )
        return [row[0] for row in cursor.fetchall()]

    def describe(self, prefix: str = "") -> list[StoredEntryInfo]:
        """Return row metadata for every key starting with ``prefix``."""
        conn = self._connection("describe_entries")
        sql = f"""
        SELECT cache_key, payload_size, created_at, expires_at, hit_count
        FROM {TABLE_NAME}
        WHERE cache_key LIKE ? ESCAPE '{LIKE_ESCAPE}'
        ORDER BY cache_key
        """  # noqa: S608
        rows = conn.execute(sql, (escape_like(prefix) + "%",)).fetchall()

        infos: list[StoredEntryInfo] = []
        for cache_key, size, created_at_str, expires_at_str, hit_count in rows:
            created_at = parse_db_timestamp(created_at_str)
            expires_at = parse_db_timestamp(expires_at_str)
            if created_at is None or expires_at is None:
                continue
            infos.append(
                StoredEntryInfo(
                    key=cache_key,
                    size=size or 0,
                    created_at=created_at,
                    expires_at=expires_at,
                    hit_count=hit_count or 0,
                ),
            )
        return infos
