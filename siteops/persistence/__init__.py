"""Persistence package exports."""

from siteops.persistence.errors import ErrorClassification, ErrorKind, StoreError, classify_error_message
from siteops.persistence.known_columns import (
    KnownMissingColumns,
    RedisKnownMissingColumns,
    get_known_missing_columns,
    reset_known_missing_columns,
)
from siteops.persistence.migration_runner import apply_sqlite_migrations
from siteops.persistence.store import QueryResult, SQLiteStore, Store, get_store

__all__ = [
    "ErrorClassification",
    "ErrorKind",
    "KnownMissingColumns",
    "QueryResult",
    "RedisKnownMissingColumns",
    "SQLiteStore",
    "Store",
    "StoreError",
    "apply_sqlite_migrations",
    "classify_error_message",
    "get_known_missing_columns",
    "get_store",
    "reset_known_missing_columns",
]
