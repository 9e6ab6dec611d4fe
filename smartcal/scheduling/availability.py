"""
Conflict and availability engine.

Pure functions over in-memory event lists:
- find_conflict / find_conflicts: events overlapping a candidate interval
- find_available_slots: free fixed-length windows inside the work day
- busy_minutes: booked minutes of a day inside the work window

All-day events occupy their whole calendar days regardless of clock time.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, List, Optional, Tuple

from ..core.models import CalendarEvent, TimeSlot
from ..core.timeutils import day_bounds, iter_windows, local_date, overlaps, to_local

DEFAULT_WORK_START = 9
DEFAULT_WORK_END = 18
DEFAULT_SLOT_MINUTES = 60


def event_interval(event: CalendarEvent,
                   tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Effective [start, end) of an event."""
    if event.all_day:
        start, _ = day_bounds(local_date(event.start_time, tz), tz)
        _, end = day_bounds(local_date(event.end_time, tz), tz)
        return start, end
    return event.start_time, event.end_time


def find_conflicts(start: datetime, end: datetime,
                   events: Iterable[CalendarEvent],
                   tz: Optional[tzinfo] = None,
                   exclude_id: Optional[str] = None) -> List[CalendarEvent]:
    """All events overlapping [start, end), in input order."""
    conflicts = []
    for event in events:
        if exclude_id is not None and event.id == exclude_id:
            continue
        event_start, event_end = event_interval(event, tz)
        if overlaps(event_start, event_end, start, end, tz):
            conflicts.append(event)
    return conflicts


def find_conflict(start: datetime, end: datetime,
                  events: Iterable[CalendarEvent],
                  tz: Optional[tzinfo] = None,
                  exclude_id: Optional[str] = None) -> Optional[CalendarEvent]:
    """
    First event (input order) whose interval overlaps [start, end).

    Overlap is strict: an event ending exactly at `start` is not a conflict.
    """
    conflicts = find_conflicts(start, end, events, tz, exclude_id)
    return conflicts[0] if conflicts else None


def events_on_day(day: date, events: Iterable[CalendarEvent],
                  tz: Optional[tzinfo] = None) -> List[CalendarEvent]:
    """Events starting on the given calendar day."""
    return [e for e in events if local_date(e.start_time, tz) == day]


def find_available_slots(day: date, events: Iterable[CalendarEvent],
                         work_start: int = DEFAULT_WORK_START,
                         work_end: int = DEFAULT_WORK_END,
                         slot_minutes: int = DEFAULT_SLOT_MINUTES,
                         tz: Optional[tzinfo] = None) -> List[TimeSlot]:
    """
    Free windows of `slot_minutes` between work_start and work_end on `day`.

    A window is free when no event starting that day overlaps it. The result
    is rebuilt on every call.

    Args:
        day: Calendar day to inspect (a datetime is reduced to its date)
        events: Candidate events; only same-day events are considered
        work_start: First hour of the work window
        work_end: Hour the work window closes
        slot_minutes: Window length
        tz: Timezone the day and naive datetimes are interpreted in

    Returns:
        Ordered list of TimeSlot
    """
    if isinstance(day, datetime):
        day = to_local(day, tz).date()
    day_events = events_on_day(day, events, tz)
    intervals = [event_interval(e, tz) for e in day_events]

    slots = []
    for slot_start, slot_end in iter_windows(day, work_start, work_end, slot_minutes, tz):
        if not any(overlaps(s, e, slot_start, slot_end, tz) for s, e in intervals):
            slots.append(TimeSlot(slot_start, slot_end))
    return slots


def busy_minutes(day: date, events: Iterable[CalendarEvent],
                 work_start: int = DEFAULT_WORK_START,
                 work_end: int = DEFAULT_WORK_END,
                 tz: Optional[tzinfo] = None) -> int:
    """Minutes of the work window covered by same-day events (overlaps merged)."""
    day_start, _ = day_bounds(day, tz)
    window_start = day_start + timedelta(hours=work_start)
    window_end = day_start + timedelta(hours=work_end)

    clipped = []
    for event in events_on_day(day, events, tz):
        start, end = event_interval(event, tz)
        start = max(to_local(start, tz), window_start)
        end = min(to_local(end, tz), window_end)
        if start < end:
            clipped.append((start, end))

    total = timedelta()
    current_end = None
    for start, end in sorted(clipped):
        if current_end is None or start >= current_end:
            total += end - start
            current_end = end
        elif end > current_end:
            total += end - current_end
            current_end = end
    return int(total.total_seconds() // 60)
