"""Security helpers."""

from siteops.security.redact import redact_sensitive

__all__ = ["redact_sensitive"]
