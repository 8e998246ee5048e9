"""Secondary writes that run after a primary commit and never fail it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from siteops.infrastructure.logging import StructuredLogger, get_logger
from siteops.persistence.store import QueryResult


@dataclass
class TaskOutcome:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class _Task:
    name: str
    func: Callable[..., Any]
    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class PostCommitTasks:
    """Ordered best-effort tasks; each one's failure is logged and recorded, not raised.

    A task fails when it raises or returns a ``QueryResult`` carrying an error.
    """

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._tasks: list[_Task] = []
        self._log = logger or get_logger()

    def add(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._tasks.append(_Task(name=name, func=func, args=args, kwargs=kwargs))

    def __len__(self) -> int:
        return len(self._tasks)

    def run(self) -> list[TaskOutcome]:
        outcomes: list[TaskOutcome] = []
        for task in self._tasks:
            try:
                result = task.func(*task.args, **task.kwargs)
            except Exception as exc:
                self._log.warning("post_commit", f"{task.name} failed: {exc}", task=task.name)
                outcomes.append(TaskOutcome(name=task.name, ok=False, error=str(exc)))
                continue
            if isinstance(result, QueryResult) and result.error is not None:
                self._log.warning("post_commit", f"{task.name} failed: {result.error.message}", task=task.name)
                outcomes.append(TaskOutcome(name=task.name, ok=False, error=result.error.message))
                continue
            outcomes.append(TaskOutcome(name=task.name, ok=True))
        self._tasks.clear()
        return outcomes


__all__ = ["PostCommitTasks", "TaskOutcome"]
