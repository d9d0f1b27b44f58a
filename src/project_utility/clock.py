"""
UTC time helpers.

Activity timestamps on the wire are UTC ISO-8601 strings; every runtime timestamp goes through
this module so adapters and tests agree on the representation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current aware datetime in UTC."""

    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Convert any datetime into UTC, treating naive values as UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_iso(dt: Optional[datetime] = None) -> str:
    """Render ISO-8601 string in UTC with explicit offset."""

    return ensure_utc(dt or utc_now()).isoformat()


__all__ = ["ensure_utc", "utc_iso", "utc_now"]
