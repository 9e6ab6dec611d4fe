"""
Event Store collaborators.

The calendar agent only depends on the EventStore interface (CRUD plus range
query). Two implementations are provided:
- InMemoryEventStore: process-local list, used by tests and the CLI default
- SQLiteEventStore: file-backed store for local development

Any backend failure surfaces as EventStoreUnavailableError so the agent can
propagate it to the caller instead of turning it into response text.
"""

import json
import sqlite3
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import EventStoreUnavailableError
from .models import CalendarEvent
from .timeutils import as_aware, overlaps

UPDATABLE_FIELDS = {
    "title", "description", "location", "start_time", "end_time", "all_day",
    "category", "color", "recurrence", "reminders", "attendees", "remote_id",
}


class EventStore(ABC):
    """Abstract Event Store collaborator"""

    @abstractmethod
    def query(self, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[CalendarEvent]:
        """Return events overlapping [start, end), ordered by start time"""
        pass

    @abstractmethod
    def get(self, event_id: str) -> Optional[CalendarEvent]:
        """Return a single event or None"""
        pass

    @abstractmethod
    def create(self, event: CalendarEvent) -> CalendarEvent:
        """Persist a new event and return it with a stable id assigned"""
        pass

    @abstractmethod
    def update(self, event_id: str, fields: Dict[str, Any]) -> Optional[CalendarEvent]:
        """Apply field changes; None if the event does not exist"""
        pass

    @abstractmethod
    def delete(self, event_id: str) -> None:
        """Remove an event (no-op if absent)"""
        pass

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def _check_fields(fields: Dict[str, Any]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")


class InMemoryEventStore(EventStore):
    """Event Store backed by a plain list (insertion order preserved)"""

    def __init__(self, events: Optional[List[CalendarEvent]] = None):
        self._events: List[CalendarEvent] = []
        for event in events or []:
            self.create(event)

    def query(self, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[CalendarEvent]:
        result = []
        for event in self._events:
            if start is not None and end is not None:
                if not overlaps(event.start_time, event.end_time, start, end):
                    continue
            elif start is not None and as_aware(event.end_time) <= as_aware(start):
                continue
            elif end is not None and as_aware(event.start_time) >= as_aware(end):
                continue
            result.append(replace(event))
        return sorted(result, key=lambda e: as_aware(e.start_time))

    def get(self, event_id: str) -> Optional[CalendarEvent]:
        for event in self._events:
            if event.id == event_id:
                return replace(event)
        return None

    def create(self, event: CalendarEvent) -> CalendarEvent:
        now = datetime.now(timezone.utc)
        stored = replace(event, id=event.id or self.new_id(),
                         created_at=event.created_at or now, updated_at=now)
        self._events.append(stored)
        return replace(stored)

    def update(self, event_id: str, fields: Dict[str, Any]) -> Optional[CalendarEvent]:
        self._check_fields(fields)
        for index, event in enumerate(self._events):
            if event.id == event_id:
                updated = replace(event, updated_at=datetime.now(timezone.utc), **fields)
                self._events[index] = updated
                return replace(updated)
        return None

    def delete(self, event_id: str) -> None:
        self._events = [e for e in self._events if e.id != event_id]

    def __len__(self) -> int:
        return len(self._events)


class SQLiteEventStore(EventStore):
    """SQLite Event Store; times are stored as UTC ISO strings"""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS calendar_events (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT,
            location TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            all_day INTEGER DEFAULT 0,
            category TEXT DEFAULT 'work',
            color TEXT,
            recurrence TEXT,
            reminders TEXT,
            attendees TEXT,
            remote_id TEXT,
            created_at TEXT,
            updated_at TEXT
        )
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    @contextmanager
    def get_connection(self):
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise EventStoreUnavailableError(f"Cannot open event store at {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            raise EventStoreUnavailableError(f"Event store query failed: {e}") from e
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the events table if needed"""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.get_connection() as conn:
            conn.execute(self.SCHEMA)
            conn.commit()

    @staticmethod
    def _utc(dt: datetime) -> str:
        return as_aware(dt).astimezone(timezone.utc).isoformat()

    def _to_row(self, event: CalendarEvent) -> Dict[str, Any]:
        data = event.to_dict()
        data["start_time"] = self._utc(event.start_time)
        data["end_time"] = self._utc(event.end_time)
        data["all_day"] = int(event.all_day)
        for key in ("location", "recurrence", "reminders", "attendees"):
            data[key] = json.dumps(data[key]) if data[key] is not None else None
        return data

    def _execute(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
            conn.commit()
            return [dict(row) for row in rows]

    def query(self, start: Optional[datetime] = None,
              end: Optional[datetime] = None) -> List[CalendarEvent]:
        conditions = []
        params = []
        if start is not None:
            conditions.append("end_time > ?")
            params.append(self._utc(start))
        if end is not None:
            conditions.append("start_time < ?")
            params.append(self._utc(end))

        where_clause = " AND ".join(conditions) if conditions else "1=1"
        rows = self._execute(
            f"SELECT * FROM calendar_events WHERE {where_clause} ORDER BY start_time ASC",
            tuple(params),
        )
        return [CalendarEvent.from_dict(row) for row in rows]

    def get(self, event_id: str) -> Optional[CalendarEvent]:
        rows = self._execute("SELECT * FROM calendar_events WHERE id = ?", (event_id,))
        return CalendarEvent.from_dict(rows[0]) if rows else None

    def create(self, event: CalendarEvent) -> CalendarEvent:
        now = datetime.now(timezone.utc)
        stored = replace(event, id=event.id or self.new_id(),
                         created_at=event.created_at or now, updated_at=now)
        row = self._to_row(stored)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)
        self._execute(
            f"INSERT INTO calendar_events ({columns}) VALUES ({placeholders})",
            tuple(row.values()),
        )
        return stored

    def update(self, event_id: str, fields: Dict[str, Any]) -> Optional[CalendarEvent]:
        self._check_fields(fields)
        current = self.get(event_id)
        if current is None:
            return None
        updated = replace(current, updated_at=datetime.now(timezone.utc), **fields)
        row = self._to_row(updated)
        row.pop("id")
        set_clause = ", ".join(f"{key} = ?" for key in row)
        self._execute(
            f"UPDATE calendar_events SET {set_clause} WHERE id = ?",
            tuple(row.values()) + (event_id,),
        )
        return updated

    def delete(self, event_id: str) -> None:
        self._execute("DELETE FROM calendar_events WHERE id = ?", (event_id,))
