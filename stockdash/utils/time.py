"""Time utilities (UTC)."""

from datetime import datetime, timezone


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_iso(dt: datetime | None) -> str | None:
    """
    Render a DB timestamp as an ISO string with offset.

    DB timestamps are stored as naive UTC, so naive values are
    interpreted as UTC here.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
