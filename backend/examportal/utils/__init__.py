"""Utility functions for the exam portal backend."""

import uuid
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Serialize a datetime as ISO-8601 in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    """Generate a short identifier such as ``exam_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def format_time_left(seconds: int) -> str:
    """Format a countdown as ``1h 5m 3s`` (hours omitted when zero)."""
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    prefix = f"{hours}h " if hours > 0 else ""
    return f"{prefix}{minutes}m {secs}s"
