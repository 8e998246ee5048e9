"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

_TRUTHY = {"1", "true", "yes", "on"}
_DEFAULT_DB_PATH = Path("data") / "siteops.sqlite3"


def _is_enabled(value: str | None) -> bool:
    return bool(value and value.strip().lower() in _TRUTHY)


def _int_env(name: str, default: int) -> int:
    raw = str(os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings(BaseModel):
    db_path: Path = Field(default=_DEFAULT_DB_PATH)
    daily_report_max_attempts: int = Field(default=8, ge=1)
    daily_report_update_max_attempts: int = Field(default=6, ge=1)
    redis_url: str = Field(default="")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    rate_limit_max: int = Field(default=60, ge=1)
    rate_limit_window: int = Field(default=60, ge=1)
    enable_docs: bool = Field(default=False)


def resolve_db_path() -> Path:
    raw = os.getenv("SITEOPS_DB_PATH", "").strip()
    return Path(raw) if raw else _DEFAULT_DB_PATH


def load_settings() -> Settings:
    origins = [item.strip() for item in os.getenv("CORS_ORIGINS", "*").split(",") if item.strip()]
    return Settings(
        db_path=resolve_db_path(),
        daily_report_max_attempts=max(1, _int_env("DAILY_REPORT_MAX_ATTEMPTS", 8)),
        daily_report_update_max_attempts=max(1, _int_env("DAILY_REPORT_UPDATE_MAX_ATTEMPTS", 6)),
        redis_url=str(os.getenv("REDIS_URL") or "").strip(),
        cors_origins=origins or ["*"],
        rate_limit_max=max(1, _int_env("RATE_LIMIT_MAX", 60)),
        rate_limit_window=max(1, _int_env("RATE_LIMIT_WINDOW", 60)),
        enable_docs=_is_enabled(os.getenv("ENABLE_DOCS")),
    )


__all__ = ["Settings", "load_settings", "resolve_db_path"]
