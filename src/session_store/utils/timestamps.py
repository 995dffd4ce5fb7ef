"""
Timestamp helpers for the persisted `createdAt` / `updatedAt` / `lastActiveAt` columns.

Timestamps are stored as fixed-width ISO-8601 UTC strings with microseconds:

    2025-01-31T09:15:02.123456Z

Fixed width means string order equals time order, which the `updatedAt DESC`
index and queries rely on.
"""

import threading
from datetime import datetime, timedelta, timezone

_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

_last: datetime | None = None
_lock = threading.Lock()


def format_iso(moment: datetime) -> str:
    """Render an aware datetime in the stored format (converted to UTC)."""
    return moment.astimezone(timezone.utc).strftime(_ISO_FORMAT)


def parse_iso(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.strptime(value, _ISO_FORMAT).replace(tzinfo=timezone.utc)


def utc_now_iso() -> str:
    """
    Current UTC time in the stored format.

    Strictly increasing within a process: if the wall clock has not moved past the
    previous value (coarse clocks, or a step backwards), the previous value plus one
    microsecond is returned instead.
    """
    global _last
    with _lock:
        now = datetime.now(timezone.utc)
        if _last is not None and now <= _last:
            now = _last + timedelta(microseconds=1)
        _last = now
    return format_iso(now)
