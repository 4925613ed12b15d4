"""UTC normalization for caller-supplied datetimes.

All instants are persisted and compared as naive UTC datetimes. Callers may
send an ISO string with an offset (converted to UTC) or without one (read as
wall-clock time in ``DEFAULT_TIMEZONE``).
"""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from api.config.settings import settings


def utc_now() -> datetime:
    """Return the current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc(value: Optional[datetime], tz_name: Optional[str] = None) -> Optional[datetime]:
    """Normalize a datetime to a naive UTC instant."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE))
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def as_aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC tzinfo to a stored naive instant for serialization."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
