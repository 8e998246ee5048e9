"""Helpers for redacting credentials and personal data in logs and error strings."""

from __future__ import annotations

import re

_REDACTED = "***REDACTED***"

_QUERY_VALUE_RE = re.compile(
    r"(?i)(?P<prefix>\b(?:key|api[_-]?key|token|secret|password|passwd)\s*=\s*)(?P<value>[^&\s\"']+)"
)
_AUTH_HEADER_RE = re.compile(
    r"(?i)(?P<prefix>\bauthorization\s*:\s*(?:bearer|basic|token)\s+)(?P<value>[^\s,;]+)"
)
_JWT_RE = re.compile(r"\beyJ[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\.[A-Za-z0-9_-]{8,}\b")
_DSN_CREDENTIAL_RE = re.compile(
    r"(?i)(?P<prefix>\b(?:postgres(?:ql)?|mysql|redis|rediss)://)(?P<creds>[^@/\s]+)@"
)
# Worker contact numbers show up in payload echoes (e.g. 010-1234-5678).
_PHONE_RE = re.compile(r"\b01[016789]-?\d{3,4}-?\d{4}\b")
# Resident registration numbers (YYMMDD-NNNNNNN).
_RRN_RE = re.compile(r"\b\d{6}-[1-4]\d{6}\b")


def redact_sensitive(text: str) -> str:
    """Redact common secret and personal-data patterns, keeping surrounding context."""
    if not text:
        return text

    redacted = str(text)
    for pattern in (_QUERY_VALUE_RE, _AUTH_HEADER_RE):
        redacted = pattern.sub(lambda m: f"{m.group('prefix')}{_REDACTED}", redacted)

    for pattern in (_JWT_RE, _RRN_RE, _PHONE_RE):
        redacted = pattern.sub(_REDACTED, redacted)

    return _DSN_CREDENTIAL_RE.sub(rf"\g<prefix>{_REDACTED}@", redacted)


__all__ = ["redact_sensitive"]
