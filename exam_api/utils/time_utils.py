"""Time utilities."""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time (timezone aware)."""
    return datetime.now(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    """Serialize datetime as ISO string, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()

