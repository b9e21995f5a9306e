"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def is_past(moment: datetime, ttl: timedelta, now: datetime | None = None) -> bool:
    """True if `moment + ttl` lies in the past. Naive datetimes are read as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now or utc_now()) > moment + ttl
