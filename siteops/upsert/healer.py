"""Column-healing update for records with a small set of optional columns."""

from __future__ import annotations

import logging
from typing import Any, Collection, Mapping

from siteops.persistence.errors import ErrorKind
from siteops.persistence.known_columns import KnownMissingColumns
from siteops.persistence.store import Store
from siteops.shared.exceptions import NotFoundError
from siteops.upsert.executor import UpsertError

_logger = logging.getLogger("siteops.upsert")


def update_with_column_healing(
    store: Store,
    table: str,
    payload: Mapping[str, Any],
    *,
    match: Mapping[str, Any],
    optional_columns: Collection[str],
    known_missing: KnownMissingColumns,
) -> dict[str, Any]:
    """Update matching rows, dropping optional columns the schema turns out to lack.

    Every discovered column goes into ``known_missing`` so later updates skip
    it up front. At most ``len(optional_columns) + 1`` attempts are made.
    """
    optional = frozenset(optional_columns)
    data = dict(payload)
    skipped = known_missing.strip(table, data, keep=frozenset(data) - optional)
    if skipped:
        _logger.debug("Skipping known missing columns on %s: %s", table, skipped)

    max_attempts = len(optional) + 1
    for attempt in range(1, max_attempts + 1):
        result = store.update(table, data, match=match)
        if result.ok:
            if result.data is None:
                raise NotFoundError(f"{table} record not found")
            return result.data

        error = result.error
        column = error.column
        if error.kind is not ErrorKind.MISSING_COLUMN or column not in optional or column not in data:
            raise UpsertError(error.message, reason="unclassified", attempts=attempt, last_error=error)

        known_missing.add(table, column)
        del data[column]
        _logger.info("Retrying %s update without missing column %s", table, column)

    raise UpsertError(
        error.message,
        reason="exhausted",
        attempts=max_attempts,
        last_error=error,
    )


__all__ = ["update_with_column_healing"]
