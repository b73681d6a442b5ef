import uuid
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(ts: datetime) -> datetime:
    """Midnight of the calendar day containing `ts` (same tz)."""
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def iso_z(ts: datetime) -> str:
    """ISO-8601 in UTC with a trailing 'Z' (what the EAs parse)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def as_utc(ts: datetime) -> datetime:
    # mongo hands back naive datetimes unless the client is tz_aware
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def new_id() -> str:
    return uuid.uuid4().hex
