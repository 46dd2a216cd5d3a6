# finzoo/core/timeutils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Treat naive datetimes coming back from the database as UTC.

    Postgres `timestamptz` columns round-trip with tzinfo; SQLite drops it.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
