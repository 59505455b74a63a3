"""
Common Models
=============

Shared helpers for identifiers and timestamps.

Version: 0.1.0
"""

import uuid
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid.uuid4())


def ensure_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes (e.g. from the database) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
