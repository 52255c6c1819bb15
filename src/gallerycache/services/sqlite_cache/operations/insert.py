"""Insert operations for SQLite cache.

This module provides the whole-row write used by the durable tier.
"""

from __future__ import annotations

import logging
from datetime import datetime

from gallerycache.services.sqlite_cache.operations.base import (
    TABLE_NAME,
    BaseOperation,
    to_db_timestamp,
)
from gallerycache.shared.cache_utils import short_key_hash
from gallerycache.shared.constants import CacheValidationConstants
from gallerycache.shared.errors import create_validation_error

logger = logging.getLogger(__name__)


class InsertOperations(BaseOperation):
    """Insert operations for cache storage."""

    def upsert(
        self,
        key: str,
        payload: bytes,
        expires_at: datetime,
        created_at: datetime | None = None,
    ) -> None:
        """Insert or replace the row for ``key``.

        Args:
            key: Cache key identifier
            payload: Serialized payload
            expires_at: Absolute expiry
            created_at: Creation time (defaults to the clock)

        Raises:
            DomainError: If the key is empty or too long, or the expiry is
                not after the creation time
        """
        conn = self._connection("set")

        if not key or len(key) > CacheValidationConstants.MAX_KEY_LENGTH:
            msg = f"Cache key must be 1-{CacheValidationConstants.MAX_KEY_LENGTH} characters"
            raise create_validation_error(msg, field="key", operation="set")

        created = created_at or self._clock()
        if expires_at <= created:
            msg = f"expires_at ({expires_at}) must be after created_at ({created})"
            raise create_validation_error(msg, field="expires_at", operation="set")

        insert_sql = f"""
        INSERT OR REPLACE INTO {TABLE_NAME} (
            cache_key, payload, created_at, expires_at, payload_size
        ) VALUES (?, ?, ?, ?, ?)
        """  # noqa: S608

        conn.execute(
            insert_sql,
            (
                key,
                payload,
                to_db_timestamp(created),
                to_db_timestamp(expires_at),
                len(payload),
            ),
        )

        logger.debug(
            "Cache row written: hash=%s..., size=%d bytes, expires_at=%s",
            short_key_hash(key),
            len(payload),
            expires_at.isoformat(),
        )
