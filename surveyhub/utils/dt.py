from __future__ import annotations

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Naive UTC now; every DateTime column stores naive UTC."""
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_datetime(raw: str | None, *, end_of_day: bool = False) -> datetime | None:
    """
    Accepts ISO dates ("2026-01-31") and datetimes ("2026-01-31T10:00:00Z").
    A bare date maps to the start of that day, or its last microsecond with end_of_day.
    Raises ValueError on garbage.
    """
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None

    if len(s) == 10:
        d = date.fromisoformat(s)
        return datetime.combine(d, time.max if end_of_day else time.min)

    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return to_naive_utc(datetime.fromisoformat(s))


def parse_hour_bucket(value: datetime | str) -> datetime:
    # SQLite returns strftime() text, PostgreSQL a datetime
    if isinstance(value, datetime):
        return to_naive_utc(value).replace(minute=0, second=0, microsecond=0)
    return datetime.fromisoformat(str(value))
