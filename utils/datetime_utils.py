"""
Timezone-aware datetime helpers for the parcel CRM.

Model timestamps and coordinate refresh times are stored in UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Get the current UTC time as a timezone-aware datetime object.

    Used as the column default for created_at/updated_at on every model.

    Returns:
        datetime: Current UTC time with timezone information
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure a datetime object is timezone-aware and in UTC.

    SQLite drops tzinfo on the way back out, so naive values read from the
    database are treated as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for JSON responses, passing None through."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
