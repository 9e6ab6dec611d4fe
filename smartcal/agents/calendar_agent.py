"""
Calendar Agent for smartcal
Executes free-text calendar commands against an in-memory event list.

The agent parses the command with the IntentExtractor, reasons over the events
(conflicts, free slots, matching, statistics) and returns an AgentResponse.
Store mutations are not performed inside process(); they are returned as a
SideEffect which handle()/apply() commit to the Event Store.

Only Event Store failures escape as exceptions. Every other outcome, including
missing fields and ambiguous targets, is a readable response.
"""

from dataclasses import replace
from datetime import datetime, time as dt_time, timedelta
from typing import Any, Callable, Dict, List, Optional
import re

from .base_agent import BaseAgent, AgentResponse
from .chat import CHAT_PROMPTS, Chooser, RoundRobinChooser
from .intent_extractor import IntentExtractor, split_move
from ..core.errors import EventStoreUnavailableError
from ..core.models import CalendarEvent, Intent, SideEffect
from ..core.timeutils import format_clock, local_date, resolve_timezone, to_local, week_bounds
from ..scheduling.availability import event_interval, find_available_slots, find_conflict


class CalendarAgent(BaseAgent):
    """
    Command executor for calendar intents.

    Handles intents:
    - create: Add an event unless it collides with an existing one
    - query: List events for today/tomorrow/this week or by keyword
    - update: Move a single matching event to a new time
    - delete: Remove a single matching event, or ask to disambiguate
    - find_time: Free slots in today's work window
    - analyze: Aggregate statistics over the event set
    - chat: Fallback prompt
    """

    INTENTS = ["create", "query", "update", "delete", "find_time", "analyze", "chat"]

    # Disambiguation listings show at most this many candidates
    MAX_LISTED_MATCHES = 5

    RELATIVE_FILTERS = [
        ("today", re.compile(r"\btoday\b|今天", re.IGNORECASE)),
        ("tomorrow", re.compile(r"\btomorrow\b|明天", re.IGNORECASE)),
        ("this_week", re.compile(r"\bthis\s+week\b|本周|这周", re.IGNORECASE)),
    ]

    # Hour ranges [from, to) in local time
    PART_OF_DAY_FILTERS = [
        (0, 12, re.compile(r"\bmorning\b|上午|早上", re.IGNORECASE)),
        (12, 18, re.compile(r"\bafternoon\b|下午", re.IGNORECASE)),
        (18, 24, re.compile(r"\bevening\b|\btonight\b|晚上", re.IGNORECASE)),
    ]

    QUERY_NOISE = re.compile(
        r"\b(?:view|show|list|agenda|my|all|the|events?|calendar|schedule|for|me)\b|查看",
        re.IGNORECASE,
    )

    def __init__(self, store=None, config=None,
                 chooser: Optional[Chooser] = None,
                 tombstones=None,
                 now: Optional[Callable[[], datetime]] = None,
                 tz=None):
        """
        Initialize the Calendar Agent.

        Args:
            store: EventStore used by handle()/apply() and when process() gets no events
            config: Config for timezone, work hours and slot length
            chooser: Reply selection strategy for chat fallback
            tombstones: TombstoneLedger recording deletes of synced events
            now: Clock callable, injectable for tests
            tz: Timezone override; defaults to the configured timezone
        """
        super().__init__(store, config, "calendar")
        self.tz = tz or resolve_timezone(self.get_config_value("timezone", section="settings"))
        self._now = now or (lambda: datetime.now(self.tz))
        self.extractor = IntentExtractor(tz=self.tz, now=self._now)
        self.chooser = chooser or RoundRobinChooser()
        self.tombstones = tombstones

        work_start = self.get_config_value("work_hours_start", default="09:00")
        work_end = self.get_config_value("work_hours_end", default="18:00")
        self.work_start = int(str(work_start).split(":")[0])
        self.work_end = int(str(work_end).split(":")[0])
        self.slot_minutes = int(self.get_config_value("slot_minutes", default=60))
        self.first_day_of_week = self.get_config_value(
            "first_day_of_week", section="settings", default="monday")

    def get_supported_intents(self) -> List[str]:
        """Return list of supported intents."""
        return self.INTENTS

    def process(self, text: str, events: Optional[List[CalendarEvent]] = None) -> AgentResponse:
        """
        Interpret a command and compute the response.

        Args:
            text: Free-text command
            events: Events to reason over; loaded from the store when None

        Returns:
            AgentResponse; `side_effect` is set for create/update/delete

        Raises:
            EventStoreUnavailableError: events were needed from an unavailable store
        """
        intent = self.extractor.parse(text)
        self.log_action(f"processing_{intent.type}", {"confidence": intent.confidence})

        if events is None:
            events = self._load_events()

        handlers = {
            "create": self._handle_create,
            "query": self._handle_query,
            "update": self._handle_update,
            "delete": self._handle_delete,
            "find_time": self._handle_find_time,
            "analyze": self._handle_analyze,
            "chat": self._handle_chat,
        }
        response = handlers[intent.type](intent, list(events))
        response.data = {**(response.data or {}), "intent": intent.to_dict()}
        return response

    def handle(self, text: str) -> AgentResponse:
        """Process a command against the store and commit its side effect."""
        response = self.process(text)
        if response.side_effect is not None:
            stored = self.apply(response.side_effect)
            if stored is not None:
                response.data["event"] = stored.to_dict()
        return response

    def apply(self, side_effect: SideEffect) -> Optional[CalendarEvent]:
        """
        Commit a side effect to the Event Store.

        Deleting an event that was already synced records its remote id in the
        tombstone ledger so the next sync pass removes it remotely instead of
        importing it again.
        """
        store = self._require_store()
        try:
            if side_effect.action == "create":
                stored = store.create(side_effect.event)
                self.log_action("event_created", {"event_id": stored.id})
                return stored

            if side_effect.action == "update":
                event = side_effect.event
                stored = store.update(side_effect.event_id, {
                    "start_time": event.start_time,
                    "end_time": event.end_time,
                })
                self.log_action("event_updated", {"event_id": side_effect.event_id})
                return stored

            if side_effect.action == "delete":
                existing = store.get(side_effect.event_id)
                store.delete(side_effect.event_id)
                if existing is not None and existing.remote_id and self.tombstones is not None:
                    self.tombstones.add(existing.remote_id)
                self.log_action("event_deleted", {"event_id": side_effect.event_id})
                return None
        except EventStoreUnavailableError:
            raise
        except (OSError, ConnectionError) as e:
            raise EventStoreUnavailableError(f"Event store failed: {e}") from e

        raise ValueError(f"Unknown side effect action: {side_effect.action}")

    # =========================================================================
    # Intent Handlers
    # =========================================================================

    def _handle_create(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """Create an event unless the requested time collides with another one."""
        if not intent.title or not intent.start_time:
            return AgentResponse.error(
                'Please tell me the event title and time, e.g. "create team meeting tomorrow at 14:00".',
                suggestions=["create team meeting tomorrow at 14:00", "find free time"]
            )

        event = CalendarEvent(
            title=intent.title,
            start_time=intent.start_time,
            end_time=intent.end_time or intent.start_time + timedelta(hours=1),
            location=intent.location,
            category=intent.category or "work",
            all_day=intent.all_day,
        )

        start, end = event_interval(event, self.tz)
        conflict = find_conflict(start, end, events, self.tz)
        if conflict is not None:
            return AgentResponse.error(
                f'Time conflict with "{conflict.title}" ({self._format_range(conflict)}). '
                "Please pick another time.",
                data={"conflict": conflict.to_dict()},
                suggestions=["find free time today"]
            )

        message = (
            f"Created event: {event.title}\n"
            f"Time: {self._format_range(event)}\n"
            f"Location: {event.location or 'not specified'}\n"
            f"Category: {event.category}\n"
            f"All day: {'yes' if event.all_day else 'no'}"
        )
        return AgentResponse.ok(
            message=message,
            side_effect=SideEffect(action="create", event=event),
            suggestions=["view today", "find free time"]
        )

    def _handle_query(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """List events for a relative day or matching a keyword."""
        query = intent.query or ""
        matches = self._filter_by_relative_date(query, events)
        if matches is None:
            term = self._search_term(query)
            matches = [e for e in events if self._mentions(e, term)] if term else list(events)
            if not matches and term.endswith("s") and not term.endswith("ss"):
                # "meetings" finds "Team meeting"
                matches = [e for e in events if self._mentions(e, term[:-1])]

        if not matches:
            return AgentResponse.ok(
                message="Nothing scheduled for that period.",
                data={"events": [], "count": 0}
            )

        lines = [f"Found {len(matches)} event(s):", ""]
        for index, event in enumerate(matches, start=1):
            lines.append(f"{index}. {event.title}")
            lines.append(f"   Time: {self._format_range(event)}")
            lines.append(f"   Location: {event.location or 'not specified'}")
            lines.append(f"   Category: {event.category}")
        return AgentResponse.ok(
            message="\n".join(lines),
            data={"events": [e.to_dict() for e in matches], "count": len(matches)}
        )

    def _handle_delete(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """Delete the single event the command points at."""
        matches = self._resolve_targets(intent, events)

        if not matches:
            return self._not_found(intent)
        if len(matches) > 1:
            return self._disambiguate(matches, "delete")

        event = matches[0]
        return AgentResponse.ok(
            message=f'Deleted event: "{event.title}" ({self._format_range(event)})',
            data={"event": event.to_dict()},
            side_effect=SideEffect(action="delete", event_id=event.id),
            suggestions=["view today"]
        )

    def _handle_update(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """Move a single matching event to a new start time, keeping its duration."""
        source, destination = split_move(intent.query or "")
        matches = self._resolve_targets(intent, events, scope=source)

        if not matches:
            return self._not_found(intent)
        if len(matches) > 1:
            return self._disambiguate(matches, "update")

        event = matches[0]
        if intent.start_time is None:
            return AgentResponse.error(
                f'When should "{event.title}" take place? e.g. "move {event.title} to 15:00".'
            )

        new_start = intent.start_time
        if not self.extractor.has_date_reference(destination or source):
            # Keep the event's own day when only a clock time was given
            new_start = datetime.combine(local_date(event.start_time, self.tz),
                                         dt_time(new_start.hour, new_start.minute),
                                         tzinfo=self.tz)
        moved = replace(event, start_time=new_start,
                        end_time=new_start + (event.end_time - event.start_time))

        start, end = event_interval(moved, self.tz)
        conflict = find_conflict(start, end, events, self.tz, exclude_id=event.id)
        if conflict is not None:
            return AgentResponse.error(
                f'Cannot move "{event.title}": it would overlap "{conflict.title}" '
                f"({self._format_range(conflict)}).",
                data={"conflict": conflict.to_dict()}
            )

        return AgentResponse.ok(
            message=f'Moved "{event.title}" to {self._format_range(moved)}',
            data={"event": moved.to_dict()},
            side_effect=SideEffect(action="update", event=moved, event_id=event.id)
        )

    def _handle_find_time(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """Free slots in today's work window."""
        today = self._today()
        slots = find_available_slots(today, events, self.work_start, self.work_end,
                                     self.slot_minutes, self.tz)
        if not slots:
            return AgentResponse.ok(
                message="No free time slots left today.",
                data={"slots": [], "count": 0}
            )

        lines = ["Available time slots today:", ""]
        lines += [
            f"• {format_clock(s.start, self.tz)} - {format_clock(s.end, self.tz)}"
            for s in slots
        ]
        return AgentResponse.ok(
            message="\n".join(lines),
            data={"slots": [s.to_dict() for s in slots], "count": len(slots)},
            suggestions=[f"create focus time at {format_clock(slots[0].start, self.tz)}"]
        )

    def _handle_analyze(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        """Aggregate statistics over the whole event set."""
        stats = self.analyze_events(events)
        message = (
            "Calendar report:\n\n"
            f"Total events: {stats['total']}\n"
            f"Work events: {stats['work']}\n"
            f"Meetings: {stats['meeting']}\n"
            f"Personal events: {stats['personal']}\n"
            f"Average duration this week: {stats['avg_duration_hours']} h\n"
            f"Busy level this week: {stats['busy_level']}%"
        )
        return AgentResponse.ok(message=message, data={"stats": stats})

    def _handle_chat(self, intent: Intent, events: List[CalendarEvent]) -> AgentResponse:
        return AgentResponse.ok(message=self.chooser.choose(CHAT_PROMPTS))

    # =========================================================================
    # Matching and statistics
    # =========================================================================

    def analyze_events(self, events: List[CalendarEvent]) -> Dict[str, Any]:
        """
        Counts over all events plus current-week duration and busy level.

        The busy level is 10% per event this week, capped at 100.
        """
        week_start, week_end = week_bounds(self._today(), self.tz, self.first_day_of_week)
        week_events = [
            e for e in events
            if week_start <= to_local(e.start_time, self.tz) < week_end
        ]
        avg_duration = 0.0
        if week_events:
            avg_duration = round(sum(e.duration_hours() for e in week_events) / len(week_events), 1)

        return {
            "total": len(events),
            "work": sum(1 for e in events if e.category == "work"),
            "meeting": sum(1 for e in events if e.category == "meeting"),
            "personal": sum(1 for e in events if e.category == "personal"),
            "week_events": len(week_events),
            "avg_duration_hours": avg_duration,
            "busy_level": min(100, len(week_events) * 10),
        }

    def _resolve_targets(self, intent: Intent, events: List[CalendarEvent],
                         scope: Optional[str] = None) -> List[CalendarEvent]:
        """
        Candidate events for delete/update, by decreasing specificity:
        1. title contains the extracted title
        2. title or description contains the raw command
        3. title appears inside the raw command
        then narrowed by today/tomorrow/this week and by morning/afternoon/
        evening when `scope` (the raw command by default) mentions them.
        """
        title = (intent.title or "").lower()
        raw = (intent.query or "").lower()

        matches = [e for e in events if title and title in e.title.lower()]
        if not matches:
            matches = [e for e in events if raw and self._mentions(e, raw)]
        if not matches:
            matches = [e for e in events if e.title.lower() in raw]

        scope = raw if scope is None else scope.lower()
        narrowed = self._filter_by_relative_date(scope, matches)
        if narrowed is not None:
            matches = narrowed
        return self._filter_by_part_of_day(scope, matches)

    def _filter_by_part_of_day(self, text: str,
                               events: List[CalendarEvent]) -> List[CalendarEvent]:
        for start_hour, end_hour, pattern in self.PART_OF_DAY_FILTERS:
            if pattern.search(text):
                return [e for e in events
                        if start_hour <= to_local(e.start_time, self.tz).hour < end_hour]
        return events

    def _filter_by_relative_date(self, text: str,
                                 events: List[CalendarEvent]) -> Optional[List[CalendarEvent]]:
        """Events on the day/week named in text; None when text names none."""
        today = self._today()
        for name, pattern in self.RELATIVE_FILTERS:
            if not pattern.search(text):
                continue
            if name == "today":
                return [e for e in events if local_date(e.start_time, self.tz) == today]
            if name == "tomorrow":
                tomorrow = today + timedelta(days=1)
                return [e for e in events if local_date(e.start_time, self.tz) == tomorrow]
            week_start, week_end = week_bounds(today, self.tz, self.first_day_of_week)
            return [e for e in events if week_start <= to_local(e.start_time, self.tz) < week_end]
        return None

    def _search_term(self, query: str) -> str:
        return re.sub(r"\s+", " ", self.QUERY_NOISE.sub(" ", query)).strip(" ?!.,").lower()

    @staticmethod
    def _mentions(event: CalendarEvent, term: str) -> bool:
        return term in event.title.lower() or term in (event.description or "").lower()

    def _not_found(self, intent: Intent) -> AgentResponse:
        target = intent.title or intent.query
        return AgentResponse.error(
            f'No event matching "{target}" was found. '
            "Check the name or try a shorter keyword.",
            suggestions=["view today", "view tomorrow"]
        )

    def _disambiguate(self, matches: List[CalendarEvent], action: str) -> AgentResponse:
        lines = [f"Found {len(matches)} matching events:", ""]
        for index, event in enumerate(matches[:self.MAX_LISTED_MATCHES], start=1):
            lines.append(f"{index}. {event.title} ({self._format_range(event)})")
        remaining = len(matches) - self.MAX_LISTED_MATCHES
        if remaining > 0:
            lines.append(f"... and {remaining} more")
        lines.append("")
        lines.append(f"Please be more specific about which event to {action}.")
        return AgentResponse.error(
            "\n".join(lines),
            data={"candidates": [e.to_dict() for e in matches]}
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_store(self):
        if self.store is None:
            raise EventStoreUnavailableError("No event store configured")
        return self.store

    def _load_events(self) -> List[CalendarEvent]:
        store = self._require_store()
        try:
            return store.query()
        except EventStoreUnavailableError:
            raise
        except (OSError, ConnectionError) as e:
            raise EventStoreUnavailableError(f"Event store failed: {e}") from e

    def _today(self):
        return self._now().astimezone(self.tz).date()

    def _format_range(self, event: CalendarEvent) -> str:
        start = to_local(event.start_time, self.tz)
        if event.all_day:
            return f"{start:%Y-%m-%d} (all day)"
        end = to_local(event.end_time, self.tz)
        if start.date() == end.date():
            return f"{start:%Y-%m-%d %H:%M}-{end:%H:%M}"
        return f"{start:%Y-%m-%d %H:%M} - {end:%Y-%m-%d %H:%M}"
