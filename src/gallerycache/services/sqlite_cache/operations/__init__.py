"""SQLite cache operations module.

This module provides separate operation classes for querying, inserting,
and updating durable cache rows.
"""

from gallerycache.services.sqlite_cache.operations.insert import InsertOperations
from gallerycache.services.sqlite_cache.operations.query import QueryOperations
from gallerycache.services.sqlite_cache.operations.update import UpdateOperations

__all__ = ["InsertOperations", "QueryOperations", "UpdateOperations"]
