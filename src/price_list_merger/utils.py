"""Shared helpers — digests and timestamps for run artifacts."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone


def sha256_bytes(data: bytes) -> str:
    """Return the hex SHA-256 digest of an uploaded file's bytes."""
    return hashlib.sha256(data).hexdigest()


def utcnow_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def compact_timestamp(now: datetime | None = None) -> str:
    """Return a sortable ``YYYYMMDD_HHMMSS`` stamp (UTC by default)."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d_%H%M%S")
