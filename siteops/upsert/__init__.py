"""Schema-drift tolerant write helpers."""

from siteops.upsert.executor import AdaptiveUpsertExecutor, UpsertError, UpsertOutcome, UpsertRequest
from siteops.upsert.healer import update_with_column_healing
from siteops.upsert.post_commit import PostCommitTasks, TaskOutcome

__all__ = [
    "AdaptiveUpsertExecutor",
    "PostCommitTasks",
    "TaskOutcome",
    "UpsertError",
    "UpsertOutcome",
    "UpsertRequest",
    "update_with_column_healing",
]
