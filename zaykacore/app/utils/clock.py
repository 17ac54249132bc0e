"""Timestamp helpers for the on-device store."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a naive ``datetime``.

    SQLite drops offsets on ``DateTime`` columns, so the store keeps every
    timestamp naive and in UTC to make values read back comparable with
    values created in memory.
    """

    return datetime.now(timezone.utc).replace(tzinfo=None)


def day_bound(value: str) -> str:
    """Normalize a caller-supplied range boundary to ``YYYY-MM-DD``."""

    value = (value or "").strip()
    if not value:
        raise ValueError("date boundary required")
    return value[:10]
