"""Adaptive upsert: write a record whose column set the deployed schema may not match.

Each failed attempt is classified by the store and the payload is healed
before the next one:

- missing column: drop it (fatal when the column is essential)
- not-null violation: inject the column's default
- unique violation: look up the conflicting row and switch to updating it
- stale schema cache: drop the known optional JSON columns
- anything else: stop

Every retry must change the payload or the write target, and the attempt
ceiling bounds the loop regardless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from siteops.infrastructure.logging import StructuredLogger, get_logger
from siteops.persistence.errors import ErrorKind, StoreError
from siteops.persistence.known_columns import KnownMissingColumns
from siteops.persistence.store import QueryResult, Store
from siteops.shared.exceptions import AppError, ErrorType

_logger = logging.getLogger("siteops.upsert")

DefaultRule = Union[Any, Callable[[Mapping[str, Any]], Any]]

# Initial re-lookup plus one retry when a unique conflict cannot be located.
_CONFLICT_LOOKUPS = 2

_REASON_TYPES = {"not_found": ErrorType.NOT_FOUND, "conflict": ErrorType.CONFLICT}


@dataclass
class UpsertRequest:
    table: str
    payload: dict[str, Any]
    record_id: Optional[str] = None
    removable: frozenset[str] = frozenset()
    essential: frozenset[str] = frozenset()
    not_null_defaults: Mapping[str, DefaultRule] = field(default_factory=dict)
    stale_cache_columns: tuple[str, ...] = ()
    conflict_keys: tuple[str, ...] = ()
    max_attempts: int = 8
    id_column: str = "id"


@dataclass
class UpsertOutcome:
    row: dict[str, Any]
    attempts: int
    mode: str
    payload: dict[str, Any]
    dropped: list[str] = field(default_factory=list)
    defaulted: dict[str, Any] = field(default_factory=dict)


class UpsertError(AppError):
    """Terminal failure of an adaptive write."""

    def __init__(
        self,
        message: str,
        *,
        reason: str,
        attempts: int,
        last_error: StoreError | None = None,
    ):
        super().__init__(message, _REASON_TYPES.get(reason, ErrorType.SERVER_ERROR))
        self.reason = reason
        self.attempts = attempts
        self.last_error = last_error


class AdaptiveUpsertExecutor:
    def __init__(
        self,
        store: Store,
        *,
        known_missing: KnownMissingColumns | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._store = store
        self._known_missing = known_missing
        self._log = logger or get_logger()

    def execute(self, request: UpsertRequest) -> UpsertOutcome:
        if request.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        payload = dict(request.payload)
        record_id = request.record_id
        dropped: list[str] = []
        defaulted: dict[str, Any] = {}

        if self._known_missing is not None:
            skipped = self._known_missing.strip(request.table, payload, keep=request.essential)
            if skipped:
                dropped.extend(skipped)
                self._log.write_healed(request.table, "skip_known_missing", columns=skipped)

        operation = f"upsert:{request.table}"
        self._log.op_start(operation, record_id=record_id)
        attempt = 0
        while True:
            attempt += 1
            mode = "update" if record_id is not None else "insert"
            self._log.write_attempt(request.table, attempt, mode, columns=sorted(payload))
            result = self._write(request, payload, record_id)

            if result.ok:
                if result.data is None:
                    raise UpsertError(
                        f"{request.table} record not found: {record_id}",
                        reason="not_found",
                        attempts=attempt,
                    )
                self._log.op_end(operation, attempts=attempt, mode=mode)
                return UpsertOutcome(
                    row=result.data,
                    attempts=attempt,
                    mode=mode,
                    payload=payload,
                    dropped=dropped,
                    defaulted=defaulted,
                )

            error = result.error
            if error is None:
                raise RuntimeError(f"store returned neither data nor error for {request.table}")
            if attempt >= request.max_attempts:
                self._log.error("upsert", error.message, table=request.table, attempts=attempt)
                raise UpsertError(
                    error.message,
                    reason="exhausted",
                    attempts=attempt,
                    last_error=error,
                )
            record_id = self._heal(request, payload, record_id, error, attempt, dropped, defaulted)

    def _write(self, request: UpsertRequest, payload: dict[str, Any], record_id: Optional[str]) -> QueryResult:
        if record_id is None:
            return self._store.insert(request.table, payload)
        return self._store.update(request.table, payload, match={request.id_column: record_id})

    def _fatal(self, request: UpsertRequest, message: str, reason: str, attempt: int, error: StoreError) -> UpsertError:
        self._log.error("upsert", message, table=request.table, reason=reason, attempts=attempt)
        return UpsertError(message, reason=reason, attempts=attempt, last_error=error)

    def _heal(
        self,
        request: UpsertRequest,
        payload: dict[str, Any],
        record_id: Optional[str],
        error: StoreError,
        attempt: int,
        dropped: list[str],
        defaulted: dict[str, Any],
    ) -> Optional[str]:
        """Mutate ``payload`` for the next attempt and return the (possibly new) target id."""
        kind = error.kind
        table = request.table

        if kind is ErrorKind.MISSING_COLUMN:
            column = error.column or ""
            if column in request.essential:
                raise self._fatal(
                    request,
                    f"required column '{column}' is missing from {table}: {error.message}",
                    "essential_column",
                    attempt,
                    error,
                )
            if column not in payload:
                raise self._fatal(request, error.message, "no_progress", attempt, error)
            del payload[column]
            dropped.append(column)
            if self._known_missing is not None and column in request.removable:
                self._known_missing.add(table, column)
            self._log.write_healed(table, "drop_column", column=column, attempt=attempt)
            return record_id

        if kind is ErrorKind.NOT_NULL_VIOLATION:
            column = error.column or ""
            if column not in request.not_null_defaults:
                raise self._fatal(request, error.message, "no_default", attempt, error)
            rule = request.not_null_defaults[column]
            value = rule(payload) if callable(rule) else rule
            if column in payload and payload[column] == value:
                raise self._fatal(request, error.message, "no_progress", attempt, error)
            payload[column] = value
            defaulted[column] = value
            self._log.write_healed(table, "default_column", column=column, attempt=attempt)
            return record_id

        if kind is ErrorKind.UNIQUE_VIOLATION:
            if record_id is not None:
                raise self._fatal(request, error.message, "conflict", attempt, error)
            if not request.conflict_keys:
                raise self._fatal(request, error.message, "conflict_unresolved", attempt, error)
            existing_id = self._find_conflicting(request, payload)
            if existing_id is None:
                raise self._fatal(request, error.message, "conflict_unresolved", attempt, error)
            self._log.write_healed(table, "switch_to_update", record_id=existing_id, attempt=attempt)
            return existing_id

        if kind is ErrorKind.STALE_SCHEMA_CACHE:
            columns = [
                column
                for column in request.stale_cache_columns
                if column in payload and column not in request.essential
            ]
            if not columns:
                raise self._fatal(request, error.message, "no_progress", attempt, error)
            for column in columns:
                del payload[column]
            dropped.extend(columns)
            self._log.write_healed(table, "drop_stale_cache_columns", columns=columns, attempt=attempt)
            return record_id

        raise self._fatal(request, error.message, "unclassified", attempt, error)

    def _find_conflicting(self, request: UpsertRequest, payload: Mapping[str, Any]) -> Optional[str]:
        if any(key not in payload for key in request.conflict_keys):
            return None
        filters = {key: payload[key] for key in request.conflict_keys}
        for lookup in range(1, _CONFLICT_LOOKUPS + 1):
            result = self._store.select(request.table, filters=filters, limit=1)
            if result.ok and result.data:
                return str(result.data[0][request.id_column])
            _logger.warning(
                "Conflicting %s row not found on lookup %d/%d", request.table, lookup, _CONFLICT_LOOKUPS
            )
        return None


__all__ = ["AdaptiveUpsertExecutor", "DefaultRule", "UpsertError", "UpsertOutcome", "UpsertRequest"]
