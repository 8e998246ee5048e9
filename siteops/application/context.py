"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass, field

from siteops.config.settings import Settings, load_settings
from siteops.infrastructure.logging import StructuredLogger, get_logger
from siteops.persistence.known_columns import KnownMissingColumns, get_known_missing_columns
from siteops.persistence.store import SQLiteStore, Store
from siteops.upsert.executor import AdaptiveUpsertExecutor
from siteops.upsert.post_commit import PostCommitTasks


@dataclass
class AppContext:
    store: Store
    known_missing: KnownMissingColumns = field(default_factory=KnownMissingColumns)
    settings: Settings = field(default_factory=Settings)
    logger: StructuredLogger | None = None

    def executor(self) -> AdaptiveUpsertExecutor:
        return AdaptiveUpsertExecutor(self.store, known_missing=self.known_missing, logger=self.logger)

    def post_commit(self) -> PostCommitTasks:
        return PostCommitTasks(logger=self.logger)


def make_app_context(settings: Settings | None = None) -> AppContext:
    resolved = settings or load_settings()
    return AppContext(
        store=SQLiteStore(resolved.db_path),
        known_missing=get_known_missing_columns(resolved.redis_url),
        settings=resolved,
        logger=get_logger(),
    )


__all__ = ["AppContext", "make_app_context"]
