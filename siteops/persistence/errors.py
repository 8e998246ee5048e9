"""Classification of database driver errors into schema-drift kinds.

The storage adapter attaches a classification to every error it returns, so
callers branch on ``StoreError.kind`` instead of matching driver text. Both
PostgreSQL/PostgREST and SQLite message dialects are recognised.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    MISSING_COLUMN = "missing_column"
    NOT_NULL_VIOLATION = "not_null_violation"
    UNIQUE_VIOLATION = "unique_violation"
    STALE_SCHEMA_CACHE = "stale_schema_cache"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class ErrorClassification:
    kind: ErrorKind
    column: Optional[str] = None


_MISSING_COLUMN_PATTERNS = (
    # PostgreSQL: column "foo" of relation "daily_reports" does not exist
    re.compile(r'column "?(?:\w+\.)?(?P<column>\w+)"?(?: of relation "?\w+"?)? does not exist', re.I),
    # PostgREST: Could not find the 'foo' column of 'daily_reports' in the schema cache
    re.compile(r"could not find the '(?P<column>\w+)' column", re.I),
    # SQLite
    re.compile(r"table \w+ has no column named (?P<column>\w+)", re.I),
    re.compile(r"no such column: (?:\w+\.)?(?P<column>\w+)", re.I),
)

_NOT_NULL_PATTERNS = (
    re.compile(r'null value in column "(?P<column>\w+)"(?: of relation "\w+")? violates not-null constraint', re.I),
    re.compile(r"not null constraint failed: (?:\w+\.)?(?P<column>\w+)", re.I),
)

_UNIQUE_PATTERNS = (
    re.compile(r"duplicate key value violates unique constraint", re.I),
    re.compile(r"unique constraint failed", re.I),
)

_SCHEMA_CACHE_RE = re.compile(r"schema cache", re.I)


def classify_error_message(message: str | None) -> ErrorClassification:
    text = str(message or "")
    for pattern in _MISSING_COLUMN_PATTERNS:
        match = pattern.search(text)
        if match:
            return ErrorClassification(ErrorKind.MISSING_COLUMN, match.group("column"))
    for pattern in _NOT_NULL_PATTERNS:
        match = pattern.search(text)
        if match:
            return ErrorClassification(ErrorKind.NOT_NULL_VIOLATION, match.group("column"))
    if any(pattern.search(text) for pattern in _UNIQUE_PATTERNS):
        return ErrorClassification(ErrorKind.UNIQUE_VIOLATION)
    if _SCHEMA_CACHE_RE.search(text):
        return ErrorClassification(ErrorKind.STALE_SCHEMA_CACHE)
    return ErrorClassification(ErrorKind.UNCLASSIFIED)


class StoreError(Exception):
    """Database error returned (not raised) by the store, with its classification."""

    def __init__(self, message: str, classification: ErrorClassification | None = None):
        self.message = message
        self.classification = classification or classify_error_message(message)
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def column(self) -> Optional[str]:
        return self.classification.column


__all__ = ["ErrorClassification", "ErrorKind", "StoreError", "classify_error_message"]
