"""Timestamp utilities.

Simple helpers to keep time handling consistent across the engine.
"""

from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def isoformat(dt: datetime) -> str:
    """Serialize a timestamp as ISO-8601 with millisecond precision and a Z suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def timestamp_str(dt: Optional[datetime] = None) -> str:
    """Format timestamp for filenames and logs.
    
    Returns: YYYYMMDD_HHMMSS format (filesystem-safe)
    """
    if dt is None:
        dt = now_utc()
    return dt.strftime("%Y%m%d_%H%M%S")


def date_str(dt: Optional[datetime] = None) -> str:
    """Format date for directory names.
    
    Returns: YYYY-MM-DD format
    """
    if dt is None:
        dt = now_utc()
    return dt.strftime("%Y-%m-%d")
