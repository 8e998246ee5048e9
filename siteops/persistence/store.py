"""Query-builder style data access over SQLite.

Every operation returns a ``QueryResult`` pair instead of raising on driver
errors; the error carries its schema-drift classification.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Collection, Iterator, Mapping, Optional, Protocol

from siteops.config.settings import resolve_db_path
from siteops.persistence.errors import StoreError
from siteops.persistence.migration_runner import apply_sqlite_migrations

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

JSON_COLUMNS: dict[str, frozenset[str]] = {
    "daily_reports": frozenset(
        {"work_content", "location_info", "additional_before_photos", "additional_after_photos"}
    ),
}


def _to_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)


def _from_json(raw: Any, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def _encode(value: Any) -> Any:
    if isinstance(value, (dict, list, tuple)):
        return _to_json(value)
    if isinstance(value, bool):
        return int(value)
    return value


@dataclass
class QueryResult:
    data: Any = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Store(Protocol):
    backend: str

    def insert(self, table: str, payload: Mapping[str, Any]) -> QueryResult: ...

    def update(self, table: str, payload: Mapping[str, Any], *, match: Mapping[str, Any]) -> QueryResult: ...

    def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        gte: Mapping[str, Any] | None = None,
        lte: Mapping[str, Any] | None = None,
        in_: Mapping[str, Collection[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> QueryResult: ...

    def delete(self, table: str, *, match: Mapping[str, Any]) -> QueryResult: ...


class _InvalidIdentifier(Exception):
    pass


def _ident(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise _InvalidIdentifier(f"invalid identifier: {name!r}")
    return f'"{name}"'


def _where(
    filters: Mapping[str, Any] | None = None,
    gte: Mapping[str, Any] | None = None,
    lte: Mapping[str, Any] | None = None,
    in_: Mapping[str, Collection[Any]] | None = None,
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column, value in (filters or {}).items():
        if value is None:
            clauses.append(f"{_ident(column)} IS NULL")
        else:
            clauses.append(f"{_ident(column)} = ?")
            params.append(_encode(value))
    for column, value in (gte or {}).items():
        clauses.append(f"{_ident(column)} >= ?")
        params.append(value)
    for column, value in (lte or {}).items():
        clauses.append(f"{_ident(column)} <= ?")
        params.append(value)
    for column, values in (in_ or {}).items():
        items = list(values)
        if not items:
            clauses.append("0")
            continue
        clauses.append(f"{_ident(column)} IN ({', '.join('?' for _ in items)})")
        params.extend(items)
    if not clauses:
        return "", params
    return " WHERE " + " AND ".join(clauses), params


class SQLiteStore:
    backend = "sqlite"

    def __init__(
        self,
        db_path: str | Path,
        *,
        json_columns: Mapping[str, Collection[str]] | None = None,
        migration_target: str | None = None,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._json_columns = {
            table: frozenset(columns) for table, columns in (json_columns or JSON_COLUMNS).items()
        }
        self._lock = threading.Lock()
        self._init_schema(migration_target)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA foreign_keys=ON;")
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    yield conn
            finally:
                conn.close()

    def _init_schema(self, target: str | None) -> None:
        with self._session() as conn:
            apply_sqlite_migrations(conn, target=target)

    def _decode(self, table: str, row: sqlite3.Row | None) -> dict[str, Any] | None:
        if row is None:
            return None
        record = dict(row)
        for column in self._json_columns.get(table, ()):
            if column in record:
                record[column] = _from_json(record[column], None)
        return record

    def insert(self, table: str, payload: Mapping[str, Any]) -> QueryResult:
        try:
            columns = [_ident(column) for column in payload]
            if columns:
                sql = (
                    f"INSERT INTO {_ident(table)} ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})"
                )
            else:
                sql = f"INSERT INTO {_ident(table)} DEFAULT VALUES"
            with self._session() as conn:
                cursor = conn.execute(sql, [_encode(value) for value in payload.values()])
                row = conn.execute(
                    f"SELECT * FROM {_ident(table)} WHERE rowid = ?", (cursor.lastrowid,)
                ).fetchone()
        except (sqlite3.Error, _InvalidIdentifier) as exc:
            return QueryResult(error=StoreError(str(exc)))
        return QueryResult(data=self._decode(table, row))

    def update(self, table: str, payload: Mapping[str, Any], *, match: Mapping[str, Any]) -> QueryResult:
        """Update matching rows and return the first updated row (``None`` when nothing matched)."""
        try:
            where, params = _where(match)
            assignments = [f"{_ident(column)} = ?" for column in payload]
            with self._session() as conn:
                rowids = [
                    item[0]
                    for item in conn.execute(f"SELECT rowid FROM {_ident(table)}{where}", params).fetchall()
                ]
                if not rowids:
                    return QueryResult(data=None)
                marks = ", ".join("?" for _ in rowids)
                if assignments:
                    conn.execute(
                        f"UPDATE {_ident(table)} SET {', '.join(assignments)} WHERE rowid IN ({marks})",
                        [_encode(value) for value in payload.values()] + rowids,
                    )
                row = conn.execute(
                    f"SELECT * FROM {_ident(table)} WHERE rowid IN ({marks}) ORDER BY rowid LIMIT 1",
                    rowids,
                ).fetchone()
        except (sqlite3.Error, _InvalidIdentifier) as exc:
            return QueryResult(error=StoreError(str(exc)))
        return QueryResult(data=self._decode(table, row))

    def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any] | None = None,
        gte: Mapping[str, Any] | None = None,
        lte: Mapping[str, Any] | None = None,
        in_: Mapping[str, Collection[Any]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> QueryResult:
        try:
            where, params = _where(filters, gte, lte, in_)
            sql = f"SELECT * FROM {_ident(table)}{where}"
            if order_by:
                sql += f" ORDER BY {_ident(order_by)} {'DESC' if descending else 'ASC'}, rowid DESC"
            if limit is not None or offset:
                sql += " LIMIT ? OFFSET ?"
                params.extend([limit if limit is not None else -1, max(0, offset)])
            with self._session() as conn:
                rows = conn.execute(sql, params).fetchall()
        except (sqlite3.Error, _InvalidIdentifier) as exc:
            return QueryResult(error=StoreError(str(exc)))
        return QueryResult(data=[self._decode(table, row) for row in rows])

    def delete(self, table: str, *, match: Mapping[str, Any]) -> QueryResult:
        try:
            where, params = _where(match)
            if not where:
                raise _InvalidIdentifier("refusing to delete without a match clause")
            with self._session() as conn:
                deleted = conn.execute(f"DELETE FROM {_ident(table)}{where}", params).rowcount
        except (sqlite3.Error, _InvalidIdentifier) as exc:
            return QueryResult(error=StoreError(str(exc)))
        return QueryResult(data=deleted)


def get_store() -> SQLiteStore:
    return SQLiteStore(resolve_db_path())


__all__ = ["JSON_COLUMNS", "QueryResult", "SQLiteStore", "Store", "get_store"]
