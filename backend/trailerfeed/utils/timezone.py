"""
Time helpers for TrailerFeed.
Provides consistent UTC datetime handling and epoch-millisecond timestamps.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.
    Replacement for deprecated datetime.utcnow().
    """
    return datetime.now(timezone.utc)


def now_millis() -> int:
    """Current time as integer milliseconds since the Unix epoch."""
    return int(utc_now().timestamp() * 1000)
