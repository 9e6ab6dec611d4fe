"""
Data models for smartcal
Defines calendar events, parsed intents, and sync/availability results.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Dict, Any
import json

CATEGORIES = ("work", "personal", "meeting", "holiday", "travel", "health")

# Display colors per category (hint only)
CATEGORY_COLORS = {
    "work": "#374151",
    "personal": "#2563eb",
    "meeting": "#059669",
    "holiday": "#d97706",
    "travel": "#7c3aed",
    "health": "#ea580c",
}

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")
REMINDER_METHODS = ("email", "popup")
INTENT_TYPES = ("create", "query", "update", "delete", "find_time", "analyze", "chat")


def _parse_datetime(value: Any) -> Optional[datetime]:
    """Parse datetime string from storage"""
    if isinstance(value, datetime):
        return value
    if value:
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
    return None


def _parse_json(value: Any) -> Any:
    """Parse JSON column, passing through already-decoded values"""
    if value is None or isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return None


@dataclass
class Location:
    """Event location; coordinates are filled by a later geocoding step"""
    name: str = ""
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    @classmethod
    def from_value(cls, value: Any) -> Optional['Location']:
        """Accept a Location, a dict, a JSON string or a plain place name"""
        if value is None or value == "":
            return None
        if isinstance(value, Location):
            return value
        if isinstance(value, str):
            decoded = _parse_json(value)
            if not isinstance(decoded, dict):
                return cls(name=value)
            value = decoded
        return cls(
            name=value.get("name", ""),
            address=value.get("address"),
            latitude=value.get("latitude"),
            longitude=value.get("longitude"),
        )

    def __str__(self) -> str:
        return self.name or self.address or ""


@dataclass
class Recurrence:
    """Repetition rule: every `interval` units of `frequency`"""
    frequency: str = "weekly"  # 'daily', 'weekly', 'monthly', 'yearly'
    interval: int = 1
    end_date: Optional[date] = None

    def __post_init__(self):
        if self.frequency not in FREQUENCIES:
            raise ValueError(f"Invalid recurrence frequency: {self.frequency}")
        if self.interval < 1:
            raise ValueError("Recurrence interval must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency,
            "interval": self.interval,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['Recurrence']:
        if not data:
            return None
        end_date = data.get("end_date")
        if isinstance(end_date, str):
            end_date = date.fromisoformat(end_date[:10])
        elif isinstance(end_date, datetime):
            end_date = end_date.date()
        return cls(
            frequency=data.get("frequency", "weekly"),
            interval=int(data.get("interval") or 1),
            end_date=end_date,
        )


@dataclass
class Reminder:
    """Reminder before event start"""
    method: str = "popup"  # 'email', 'popup'
    minutes_before: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {"method": self.method, "minutes_before": self.minutes_before}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Reminder':
        return cls(
            method=data.get("method", "popup"),
            minutes_before=int(data.get("minutes_before", 10)),
        )


@dataclass
class CalendarEvent:
    """Calendar event data model"""
    id: Optional[str] = None
    title: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    description: Optional[str] = None
    location: Optional[Location] = None
    all_day: bool = False
    category: str = "work"
    color: Optional[str] = None
    recurrence: Optional[Recurrence] = None
    reminders: List[Reminder] = field(default_factory=list)
    attendees: List[str] = field(default_factory=list)
    remote_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.title or not self.title.strip():
            raise ValueError("Event title must not be empty")
        if self.start_time is None or self.end_time is None:
            raise ValueError("Event start and end time are required")
        if self.start_time > self.end_time:
            raise ValueError("Event start time must not be after end time")
        if self.category not in CATEGORIES:
            raise ValueError(f"Invalid category: {self.category}")
        self.location = Location.from_value(self.location)
        if self.color is None:
            self.color = CATEGORY_COLORS[self.category]

    @property
    def is_synced(self) -> bool:
        return self.remote_id is not None

    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain data (ISO datetimes, nested dicts)"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location.to_dict() if self.location else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "all_day": self.all_day,
            "category": self.category,
            "color": self.color,
            "recurrence": self.recurrence.to_dict() if self.recurrence else None,
            "reminders": [r.to_dict() for r in self.reminders],
            "attendees": list(self.attendees),
            "remote_id": self.remote_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CalendarEvent':
        """Create CalendarEvent from a storage row or API payload"""
        reminders = _parse_json(data.get('reminders')) or []
        return cls(
            id=data.get('id'),
            title=data.get('title', ''),
            description=data.get('description'),
            location=Location.from_value(data.get('location')),
            start_time=_parse_datetime(data.get('start_time')),
            end_time=_parse_datetime(data.get('end_time')),
            all_day=bool(data.get('all_day', False)),
            category=data.get('category') or 'work',
            color=data.get('color'),
            recurrence=Recurrence.from_dict(_parse_json(data.get('recurrence'))),
            reminders=[Reminder.from_dict(r) for r in reminders],
            attendees=_parse_json(data.get('attendees')) or [],
            remote_id=data.get('remote_id'),
            created_at=_parse_datetime(data.get('created_at')),
            updated_at=_parse_datetime(data.get('updated_at')),
        )


@dataclass
class Intent:
    """Structured interpretation of a free-text command. Never persisted."""
    type: str = "chat"
    confidence: float = 0.5
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    category: Optional[str] = None
    all_day: bool = False
    query: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "confidence": self.confidence,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "location": self.location,
            "category": self.category,
            "all_day": self.all_day,
            "query": self.query,
        }


@dataclass
class SideEffect:
    """Store mutation requested by the calendar agent"""
    action: str  # 'create', 'update', 'delete'
    event: Optional[CalendarEvent] = None
    event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "event": self.event.to_dict() if self.event else None,
            "event_id": self.event_id,
        }


@dataclass(frozen=True)
class TimeSlot:
    """Free interval produced by the availability engine"""
    start: datetime
    end: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class SyncResult:
    """Outcome of one reconciliation pass"""
    created: int = 0
    updated: int = 0
    deleted: int = 0
    errors: List[str] = field(default_factory=list)
    bound: Dict[str, str] = field(default_factory=dict)  # local id -> remote id
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors and not self.cancelled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "errors": list(self.errors),
            "bound": dict(self.bound),
            "cancelled": self.cancelled,
        }
