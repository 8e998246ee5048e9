"""Registry of columns known to be absent from the deployed schema.

Entries are only ever added: a column discovered missing stays missing for
the life of the registry, so later writes can skip rediscovering it.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any, MutableMapping

import redis

_logger = logging.getLogger("siteops.schema")

_DEFAULT_PREFIX = "siteops:missing-columns:"


class KnownMissingColumns:
    """Thread-safe in-memory registry keyed by (table, column)."""

    backend = "memory"

    def __init__(self) -> None:
        self._entries: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def add(self, table: str, column: str) -> None:
        with self._lock:
            if (table, column) not in self._entries:
                _logger.info("Column %s.%s recorded as missing", table, column)
            self._entries.add((table, column))

    def contains(self, table: str, column: str) -> bool:
        with self._lock:
            return (table, column) in self._entries

    def for_table(self, table: str) -> frozenset[str]:
        with self._lock:
            return frozenset(column for owner, column in self._entries if owner == table)

    def strip(
        self,
        table: str,
        payload: MutableMapping[str, Any],
        *,
        keep: frozenset[str] = frozenset(),
    ) -> list[str]:
        """Remove known-missing columns from ``payload`` in place, except ``keep``."""
        removed = sorted(column for column in self.for_table(table) if column in payload and column not in keep)
        for column in removed:
            del payload[column]
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisKnownMissingColumns(KnownMissingColumns):
    """Registry shared between instances through one Redis set per table."""

    backend = "redis"

    def __init__(self, redis_url: str, prefix: str = _DEFAULT_PREFIX) -> None:
        super().__init__()
        self._prefix = prefix
        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._client.ping()

    def _key(self, table: str) -> str:
        return f"{self._prefix}{table}"

    def add(self, table: str, column: str) -> None:
        super().add(table, column)
        try:
            self._client.sadd(self._key(table), column)
        except redis.RedisError as exc:
            _logger.warning("Redis registry write failed for %s.%s, kept in memory: %s", table, column, exc)

    def contains(self, table: str, column: str) -> bool:
        if super().contains(table, column):
            return True
        try:
            return bool(self._client.sismember(self._key(table), column))
        except redis.RedisError as exc:
            _logger.warning("Redis registry lookup failed for %s.%s, using memory: %s", table, column, exc)
            return False

    def for_table(self, table: str) -> frozenset[str]:
        local = super().for_table(table)
        try:
            return local | frozenset(self._client.smembers(self._key(table)))
        except redis.RedisError as exc:
            _logger.warning("Redis registry read failed for %s, using memory: %s", table, exc)
            return local

    def clear(self) -> None:
        super().clear()
        for key in self._client.scan_iter(f"{self._prefix}*"):
            self._client.delete(key)


def _build_registry(redis_url: str) -> KnownMissingColumns:
    if redis_url:
        try:
            registry = RedisKnownMissingColumns(redis_url)
            _logger.info("Missing-column registry initialized with Redis backend")
            return registry
        except Exception as exc:
            _logger.warning(
                "Failed to initialize Redis missing-column registry, fallback to memory: %s",
                exc,
            )
    return KnownMissingColumns()


_global_lock = threading.Lock()
_global_registry: KnownMissingColumns | None = None


def get_known_missing_columns(redis_url: str | None = None) -> KnownMissingColumns:
    global _global_registry
    with _global_lock:
        if _global_registry is None:
            url = redis_url if redis_url is not None else str(os.getenv("REDIS_URL") or "")
            _global_registry = _build_registry(url.strip())
        return _global_registry


def reset_known_missing_columns() -> None:
    global _global_registry
    with _global_lock:
        _global_registry = None


__all__ = [
    "KnownMissingColumns",
    "RedisKnownMissingColumns",
    "get_known_missing_columns",
    "reset_known_missing_columns",
]
