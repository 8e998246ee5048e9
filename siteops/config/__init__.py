"""Runtime configuration helpers."""

from siteops.config.settings import Settings, load_settings, resolve_db_path

__all__ = ["Settings", "load_settings", "resolve_db_path"]
