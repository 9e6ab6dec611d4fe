"""
Time interval helpers shared by the extractor, the availability engine and
the calendar agent.

Intervals are half-open: [start, end). Naive datetimes are interpreted in the
timezone passed in (UTC when none is given), so naive and aware values can be
mixed safely.
"""

from datetime import date, datetime, time as dt_time, timedelta, timezone, tzinfo
from typing import Iterator, Optional, Tuple

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAY_INDEX = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Return a tzinfo for an IANA name, falling back to UTC."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def as_aware(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Attach tz (default UTC) to naive datetimes; aware values are kept."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz or timezone.utc)
    return dt


def to_local(dt: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Express dt in tz (default UTC)."""
    return as_aware(dt, tz).astimezone(tz or timezone.utc)


def local_date(dt: datetime, tz: Optional[tzinfo] = None) -> date:
    return to_local(dt, tz).date()


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Midnight-to-midnight interval for a calendar day."""
    start = datetime.combine(day, dt_time.min, tzinfo=tz or timezone.utc)
    return start, start + timedelta(days=1)


def week_bounds(day: date, tz: Optional[tzinfo] = None,
                first_day: str = "monday") -> Tuple[datetime, datetime]:
    """Interval of the calendar week containing day."""
    first = WEEKDAY_INDEX.get(first_day.lower(), 0)
    offset = (day.weekday() - first) % 7
    week_start = day - timedelta(days=offset)
    start, _ = day_bounds(week_start, tz)
    return start, start + timedelta(days=7)


def overlaps(start_a: datetime, end_a: datetime,
             start_b: datetime, end_b: datetime,
             tz: Optional[tzinfo] = None) -> bool:
    """Strict half-open overlap: touching intervals do not overlap."""
    start_a, end_a = as_aware(start_a, tz), as_aware(end_a, tz)
    start_b, end_b = as_aware(start_b, tz), as_aware(end_b, tz)
    return start_b < end_a and end_b > start_a


def iter_windows(day: date, work_start: int, work_end: int,
                 slot_minutes: int = 60,
                 tz: Optional[tzinfo] = None) -> Iterator[Tuple[datetime, datetime]]:
    """Consecutive slot_minutes windows between two hours of a day."""
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")
    day_start, _ = day_bounds(day, tz)
    current = day_start + timedelta(hours=work_start)
    limit = day_start + timedelta(hours=work_end)
    step = timedelta(minutes=slot_minutes)
    while current + step <= limit:
        yield current, current + step
        current += step


def format_clock(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    return to_local(dt, tz).strftime("%H:%M")
