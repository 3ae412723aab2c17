"""
Centralized utilities for time handling in EasyLearn.
Goal: timezone-aware UTC everywhere, whatever the storage engine hands back.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite returns these) as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value).replace('Z', '+00:00')))


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 UTC, None stays None."""
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None
