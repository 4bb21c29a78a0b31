from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def to_iso(dt: datetime) -> str:
    ensure_aware(dt)
    # fixed width UTC so stored strings sort chronologically
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def start_of_day(dt: datetime, tz: tzinfo) -> datetime:
    """Midnight of dt's calendar day in tz (aware)."""
    local = ensure_aware(dt).astimezone(tz)
    return datetime.combine(local.date(), datetime.min.time(), tzinfo=tz)


def day_range(dt: datetime, tz: tzinfo) -> tuple[datetime, datetime]:
    """[start of dt's day, start of next day) in tz."""
    start = start_of_day(dt, tz)
    # add a calendar day, not 24h, so DST changes keep midnight
    next_day = datetime.combine(start.date() + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return start, next_day


def local_date(dt: datetime, tz: tzinfo) -> date:
    return ensure_aware(dt).astimezone(tz).date()
