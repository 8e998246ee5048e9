"""Structured logging: JSON-line events with credential and personal-data scrubbing."""

from __future__ import annotations

import json
import sys
import time
import uuid
from typing import Any, Optional

from siteops.security.redact import redact_sensitive


class StructuredLogger:
    """Emit one JSON object per line, tagged with a trace id."""

    def __init__(self, trace_id: Optional[str] = None, output=None):
        self.trace_id = trace_id or str(uuid.uuid4())[:8]
        self._output = output or sys.stderr
        self._timers: dict[str, float] = {}

    def _emit(self, data: dict[str, Any]) -> None:
        data["trace_id"] = self.trace_id
        data["timestamp"] = time.time()
        try:
            line = redact_sensitive(json.dumps(data, ensure_ascii=False, default=str))
            self._output.write(line + "\n")
            self._output.flush()
        except Exception as exc:
            # Serialization or stream failure: report it on stderr instead.
            try:
                fallback = {
                    "event": "logger_internal_error",
                    "trace_id": self.trace_id,
                    "timestamp": time.time(),
                    "error": str(exc),
                }
                sys.stderr.write(json.dumps(fallback, ensure_ascii=False, default=str) + "\n")
                sys.stderr.flush()
            except Exception:
                return

    def op_start(self, operation: str, **extra: Any) -> None:
        self._timers[operation] = time.time()
        self._emit({"event": "op_start", "op": operation, **extra})

    def op_end(self, operation: str, *, attempts: int = 0, **extra: Any) -> None:
        start = self._timers.pop(operation, time.time())
        duration_ms = round((time.time() - start) * 1000, 1)
        self._emit({
            "event": "op_end",
            "op": operation,
            "duration_ms": duration_ms,
            "attempts": attempts,
            **extra,
        })

    def write_attempt(self, table: str, attempt: int, mode: str, **extra: Any) -> None:
        self._emit({"event": "write_attempt", "table": table, "attempt": attempt, "mode": mode, **extra})

    def write_healed(self, table: str, action: str, **extra: Any) -> None:
        self._emit({"event": "write_healed", "table": table, "action": action, **extra})

    def error(self, component: str, error: str, **extra: Any) -> None:
        self._emit({"event": "error", "component": component, "error": error, **extra})

    def warning(self, component: str, message: str, **extra: Any) -> None:
        self._emit({"event": "warning", "component": component, "message": message, **extra})


_logger: Optional[StructuredLogger] = None


def get_logger(trace_id: Optional[str] = None) -> StructuredLogger:
    global _logger
    if _logger is None or (trace_id and _logger.trace_id != trace_id):
        _logger = StructuredLogger(trace_id=trace_id)
    return _logger


__all__ = ["StructuredLogger", "get_logger"]
