"""pytest shared fixtures: environment isolation and throwaway databases."""

import pytest

from siteops.application.context import AppContext
from siteops.config.settings import Settings
from siteops.infrastructure.logging import StructuredLogger
from siteops.persistence.known_columns import KnownMissingColumns, reset_known_missing_columns
from siteops.persistence.store import SQLiteStore


class _NullStream:
    def write(self, _text):
        return 0

    def flush(self):
        return None


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep tests off real Redis instances and the default database path."""
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.delenv("SITEOPS_DB_PATH", raising=False)
    monkeypatch.delenv("DAILY_REPORT_MAX_ATTEMPTS", raising=False)
    monkeypatch.delenv("DAILY_REPORT_UPDATE_MAX_ATTEMPTS", raising=False)
    reset_known_missing_columns()
    yield
    reset_known_missing_columns()


@pytest.fixture
def quiet_logger():
    return StructuredLogger(trace_id="test", output=_NullStream())


@pytest.fixture
def store(tmp_path):
    return SQLiteStore(tmp_path / "siteops.sqlite3")


@pytest.fixture
def legacy_store(tmp_path):
    """A database left on the first schema revision."""
    return SQLiteStore(tmp_path / "legacy.sqlite3", migration_target="0001_init")


def _context(store, logger):
    return AppContext(
        store=store,
        known_missing=KnownMissingColumns(),
        settings=Settings(db_path=store.db_path),
        logger=logger,
    )


@pytest.fixture
def ctx(store, quiet_logger):
    return _context(store, quiet_logger)


@pytest.fixture
def legacy_ctx(legacy_store, quiet_logger):
    return _context(legacy_store, quiet_logger)
