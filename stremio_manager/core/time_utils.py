"""
Timezone-safe datetime utilities.

All timestamps are stored in UTC.
"""

from datetime import datetime, timezone
from typing import Union


def utc_now() -> datetime:
    """
    Return current UTC datetime with timezone info attached.

    Returns:
        datetime: Current UTC datetime (timezone-aware)
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Convert any datetime to UTC.

    If the datetime is naive (no timezone info), it's assumed to be UTC.
    If it has timezone info, it's converted to UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Union[str, datetime, int, float]) -> datetime:
    """
    Parse an ISO 8601 string (or epoch milliseconds) into a UTC datetime.

    Exports written by older browser builds store epoch milliseconds.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))
