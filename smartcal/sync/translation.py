"""
Translation between local CalendarEvents and the remote provider's wire shape.

The wire shape follows the Google Calendar v3 event resource: start/end carry
either a date (all-day) or a dateTime, each with a timeZone. A remote all-day
end date is exclusive; locally the end date is the last day of the event.
"""

from datetime import date, datetime, time as dt_time, timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from dateutil import parser as date_parser

from ..core.models import CalendarEvent, Location
from ..core.timeutils import local_date, resolve_timezone, to_local

logger = logging.getLogger(__name__)

# Placeholder until the user categorizes imported events
IMPORTED_CATEGORY = "personal"


def recurrence_rules(event: CalendarEvent) -> List[str]:
    """RRULE lines for an event's recurrence (empty when not recurring)."""
    recurrence = event.recurrence
    if recurrence is None:
        return []
    rules = [f"RRULE:FREQ={recurrence.frequency.upper()};INTERVAL={recurrence.interval}"]
    if recurrence.end_date:
        rules[0] += f";UNTIL={recurrence.end_date:%Y%m%d}"
    return rules


def to_remote_event(event: CalendarEvent, tz_name: str = "UTC") -> Dict[str, Any]:
    """
    Build the remote event body for a local event.

    Args:
        event: Local event
        tz_name: IANA timezone sent with start/end

    Returns:
        Event resource dict (summary, start, end and optional extras)
    """
    tz = resolve_timezone(tz_name)
    body: Dict[str, Any] = {"summary": event.title}

    if event.description:
        body["description"] = event.description
    if event.location:
        body["location"] = str(event.location)

    if event.all_day:
        body["start"] = {"date": local_date(event.start_time, tz).isoformat(), "timeZone": tz_name}
        last_day = local_date(event.end_time, tz)
        body["end"] = {"date": (last_day + timedelta(days=1)).isoformat(), "timeZone": tz_name}
    else:
        body["start"] = {"dateTime": to_local(event.start_time, tz).isoformat(), "timeZone": tz_name}
        body["end"] = {"dateTime": to_local(event.end_time, tz).isoformat(), "timeZone": tz_name}

    rules = recurrence_rules(event)
    if rules:
        body["recurrence"] = rules

    if event.reminders:
        body["reminders"] = {
            "useDefault": False,
            "overrides": [
                {
                    "method": "email" if r.method == "email" else "popup",
                    "minutes": r.minutes_before,
                }
                for r in event.reminders
            ],
        }

    if event.attendees:
        body["attendees"] = [{"email": email} for email in event.attendees]

    return body


def _parse_boundary(boundary: Dict[str, Any], tz) -> Tuple[Optional[datetime], bool]:
    """(datetime, is_all_day) for a remote start/end object."""
    if boundary.get("dateTime"):
        parsed = date_parser.isoparse(boundary["dateTime"])
        if parsed.tzinfo is None:
            zone = boundary.get("timeZone")
            parsed = parsed.replace(tzinfo=resolve_timezone(zone) if zone else tz)
        return parsed, False
    if boundary.get("date"):
        day = date.fromisoformat(boundary["date"][:10])
        return datetime.combine(day, dt_time.min, tzinfo=tz), True
    return None, False


def from_remote_event(item: Dict[str, Any], tz_name: str = "UTC") -> Optional[CalendarEvent]:
    """
    Build a local event from a remote event resource.

    All-day events are anchored at local midnight of their dates; timed events
    keep their timestamps. Returns None for items without usable times.
    """
    tz = resolve_timezone(tz_name)
    start, all_day = _parse_boundary(item.get("start") or {}, tz)
    end, _ = _parse_boundary(item.get("end") or {}, tz)
    if start is None:
        logger.warning(f"Skipping remote event without start: {item.get('id')}")
        return None
    if all_day and end is not None:
        end -= timedelta(days=1)
    if end is None or end < start:
        end = start

    attendees = [a["email"] for a in item.get("attendees", []) if a.get("email")]

    return CalendarEvent(
        title=item.get("summary") or "(No title)",
        description=item.get("description"),
        location=Location(name=item["location"]) if item.get("location") else None,
        start_time=start,
        end_time=end,
        all_day=all_day,
        category=IMPORTED_CATEGORY,
        attendees=attendees,
        remote_id=item.get("id"),
    )
