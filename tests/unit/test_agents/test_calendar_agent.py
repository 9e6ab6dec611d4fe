"""
Unit tests for the CalendarAgent.
Tests intent handling (create/query/update/delete/find_time/analyze/chat),
the conflict gate, target resolution, store integration and error handling.
"""

import pytest
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from smartcal.agents.base_agent import AgentResponse
from smartcal.agents.calendar_agent import CalendarAgent
from smartcal.agents.chat import CHAT_PROMPTS, RandomChooser, RoundRobinChooser
from smartcal.core.errors import EventStoreUnavailableError
from smartcal.core.models import CalendarEvent
from smartcal.core.store import InMemoryEventStore
from smartcal.sync.tombstones import TombstoneLedger

UTC = timezone.utc
# Wednesday 2026-10-14, 08:00 UTC
NOW = datetime(2026, 10, 14, 8, 0, tzinfo=UTC)


def at(hour, minute=0, days=0):
    return datetime(2026, 10, 14, hour, minute, tzinfo=UTC) + timedelta(days=days)


def make_event(event_id, title, start, hours=1.0, **kwargs):
    return CalendarEvent(id=event_id, title=title, start_time=start,
                         end_time=start + timedelta(hours=hours), **kwargs)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_config():
    """Create a mock config object with default preferences."""
    config = MagicMock()

    def config_get(key, section="preferences", default=None):
        config_values = {
            "work_hours_start": "09:00",
            "work_hours_end": "18:00",
            "slot_minutes": 60,
            "timezone": "UTC",
            "first_day_of_week": "monday",
        }
        return config_values.get(key, default)

    config.get.side_effect = config_get
    return config


@pytest.fixture
def store():
    return InMemoryEventStore()


@pytest.fixture
def tombstones():
    return TombstoneLedger()


@pytest.fixture
def calendar_agent(store, mock_config, tombstones):
    """Create a CalendarAgent with an in-memory store and a fixed clock."""
    return CalendarAgent(store, mock_config, tombstones=tombstones, now=lambda: NOW)


@pytest.fixture
def standup():
    return make_event("e-standup", "Standup", at(14))


# =============================================================================
# Initialization
# =============================================================================

class TestCalendarAgentInit:
    """Tests for agent setup."""

    def test_agent_initializes_correctly(self, calendar_agent):
        assert calendar_agent.name == "calendar"
        assert (calendar_agent.work_start, calendar_agent.work_end) == (9, 18)

    def test_get_supported_intents(self, calendar_agent):
        intents = calendar_agent.get_supported_intents()
        for intent in ["create", "query", "update", "delete", "find_time", "analyze", "chat"]:
            assert intent in intents

    def test_can_handle(self, calendar_agent):
        assert calendar_agent.can_handle("create")
        assert not calendar_agent.can_handle("add_task")

    def test_works_without_config(self, store):
        agent = CalendarAgent(store, None, now=lambda: NOW)
        assert agent.slot_minutes == 60


# =============================================================================
# Create
# =============================================================================

class TestCreate:
    """Tests for create with the conflict gate."""

    def test_create_emits_side_effect(self, calendar_agent):
        response = calendar_agent.process("create a meeting at 14:00", [])
        assert isinstance(response, AgentResponse)
        assert response.success
        assert response.side_effect.action == "create"
        event = response.side_effect.event
        assert event.title == "meeting"
        assert event.start_time == at(14)
        assert event.end_time == at(15)
        assert "Created event: meeting" in response.message

    def test_create_with_conflict_is_refused(self, calendar_agent, standup):
        response = calendar_agent.process("create a sync at 14:30", [standup])
        assert not response.success
        assert response.side_effect is None
        assert "Standup" in response.message
        assert response.data["conflict"]["id"] == "e-standup"

    def test_touching_event_is_not_a_conflict(self, calendar_agent, standup):
        response = calendar_agent.process("create a sync at 15:00", [standup])
        assert response.success
        assert response.side_effect.action == "create"

    def test_missing_time_gives_guidance(self, calendar_agent):
        response = calendar_agent.process("create lunch", [])
        assert not response.success
        assert response.side_effect is None
        assert response.message

    def test_all_day_event_blocks_the_day(self, calendar_agent):
        vacation = CalendarEvent(id="v", title="Vacation", start_time=at(0), end_time=at(0),
                                 all_day=True, category="holiday")
        response = calendar_agent.process("create a call at 20:00", [vacation])
        assert not response.success
        assert "Vacation" in response.message

    def test_create_and_query_round_trip(self, calendar_agent, store):
        created = calendar_agent.handle("create a meeting at 14:00")
        assert created.data["event"]["id"]
        assert len(store) == 1

        response = calendar_agent.handle("view today")
        assert response.success
        assert "meeting" in response.message
        assert response.data["count"] == 1


# =============================================================================
# Query
# =============================================================================

class TestQuery:
    """Tests for listing events."""

    def test_today_filter(self, calendar_agent, standup):
        tomorrow = make_event("e2", "Planning", at(10, days=1))
        response = calendar_agent.process("view today", [standup, tomorrow])
        assert response.data["count"] == 1
        assert "Standup" in response.message
        assert "Planning" not in response.message

    def test_tomorrow_filter(self, calendar_agent, standup):
        tomorrow = make_event("e2", "Planning", at(10, days=1), location="Room 4")
        response = calendar_agent.process("show tomorrow", [standup, tomorrow])
        assert response.data["count"] == 1
        assert "Planning" in response.message
        assert "Room 4" in response.message

    def test_keyword_filter(self, calendar_agent, standup):
        dentist = make_event("e2", "Dentist", at(10, days=3), category="health")
        response = calendar_agent.process("show dentist", [standup, dentist])
        assert response.data["count"] == 1
        assert "Dentist" in response.message

    def test_plural_keyword_finds_singular_title(self, calendar_agent, standup):
        team = make_event("e2", "Team meeting", at(10, days=1), category="meeting")
        response = calendar_agent.process("show my meetings", [standup, team])
        assert response.data["count"] == 1
        assert "Team meeting" in response.message

    def test_nothing_scheduled(self, calendar_agent, standup):
        response = calendar_agent.process("view tomorrow", [standup])
        assert response.success
        assert response.message == "Nothing scheduled for that period."


# =============================================================================
# Delete
# =============================================================================

class TestDelete:
    """Tests for delete target resolution."""

    def test_single_match_emits_delete(self, calendar_agent):
        dentist = make_event("e-dentist", "Dentist", at(10), category="health")
        response = calendar_agent.process("delete Dentist", [dentist])
        assert response.success
        assert response.side_effect.action == "delete"
        assert response.side_effect.event_id == "e-dentist"
        assert "Dentist" in response.message

    def test_ambiguous_match_lists_candidates(self, calendar_agent):
        events = [make_event("r1", "Review", at(10)), make_event("r2", "Review", at(16))]
        response = calendar_agent.process("delete Review", events)
        assert not response.success
        assert response.side_effect is None
        assert "Found 2 matching events" in response.message
        assert response.message.count("Review") == 2
        assert len(response.data["candidates"]) == 2

    def test_listing_is_capped(self, calendar_agent):
        events = [make_event(f"s{i}", f"Sync {i}", at(9 + i)) for i in range(7)]
        response = calendar_agent.process("delete Sync", events)
        assert "5. Sync 4" in response.message
        assert "Sync 5" not in response.message
        assert "... and 2 more" in response.message

    def test_not_found(self, calendar_agent, standup):
        response = calendar_agent.process("delete Dentist", [standup])
        assert not response.success
        assert response.side_effect is None
        assert "Dentist" in response.message

    def test_title_contained_in_command(self, calendar_agent):
        """Falls back to events whose title appears inside the command."""
        gym = make_event("g", "Gym", at(7), category="health")
        response = calendar_agent.process("delete gym session", [gym])
        assert response.side_effect.event_id == "g"

    def test_description_match(self, calendar_agent):
        event = make_event("d", "Call", at(11), description="remove old backups")
        response = calendar_agent.process("remove old backups", [event])
        assert response.side_effect.event_id == "d"

    def test_this_week_narrows_matches(self, calendar_agent):
        this_week = make_event("r1", "Review", at(10, days=1))
        next_week = make_event("r2", "Review", at(10, days=7))
        response = calendar_agent.process("delete Review this week", [this_week, next_week])
        assert response.side_effect.event_id == "r1"

    def test_afternoon_narrows_matches(self, calendar_agent):
        morning = make_event("s1", "Standup", at(9))
        afternoon = make_event("s2", "Standup", at(14))
        response = calendar_agent.process("delete Standup this afternoon", [morning, afternoon])
        assert response.side_effect.event_id == "s2"

    def test_morning_narrows_matches_in_chinese(self, calendar_agent):
        morning = make_event("s1", "会议", at(9))
        afternoon = make_event("s2", "会议", at(14))
        response = calendar_agent.process("删除上午的会议", [morning, afternoon])
        assert response.side_effect.event_id == "s1"

    def test_handle_deletes_and_records_tombstone(self, calendar_agent, store, tombstones):
        store.create(make_event("e-dentist", "Dentist", at(10), remote_id="remote-1"))
        response = calendar_agent.handle("delete Dentist")
        assert response.success
        assert store.get("e-dentist") is None
        assert "remote-1" in tombstones

    def test_unsynced_delete_leaves_no_tombstone(self, calendar_agent, store, tombstones):
        store.create(make_event("e-dentist", "Dentist", at(10)))
        calendar_agent.handle("delete Dentist")
        assert len(tombstones) == 0


# =============================================================================
# Update
# =============================================================================

class TestUpdate:
    """Tests for moving an event."""

    def test_move_keeps_day_and_duration(self, calendar_agent):
        dentist = make_event("e-dentist", "Dentist", at(10, days=2), hours=1.5)
        response = calendar_agent.process("move Dentist to 16:00", [dentist])
        assert response.success
        moved = response.side_effect.event
        assert response.side_effect.action == "update"
        assert moved.start_time == at(16, days=2)
        assert moved.end_time == at(17, 30, days=2)

    def test_move_into_conflict_is_refused(self, calendar_agent):
        dentist = make_event("e-dentist", "Dentist", at(10))
        blocker = make_event("b", "Board meeting", at(16))
        response = calendar_agent.process("move Dentist to 16:30", [dentist, blocker])
        assert not response.success
        assert response.side_effect is None
        assert "Board meeting" in response.message

    def test_move_over_itself_is_allowed(self, calendar_agent):
        dentist = make_event("e-dentist", "Dentist", at(10), hours=2)
        response = calendar_agent.process("move Dentist to 11:00", [dentist])
        assert response.success

    def test_move_without_time(self, calendar_agent):
        dentist = make_event("e-dentist", "Dentist", at(10))
        response = calendar_agent.process("postpone Dentist", [dentist])
        assert not response.success
        assert response.side_effect is None

    def test_handle_updates_store(self, calendar_agent, store):
        store.create(make_event("e-dentist", "Dentist", at(10)))
        calendar_agent.handle("move Dentist to 16:00")
        assert store.get("e-dentist").start_time == at(16)

    def test_move_to_another_day(self, calendar_agent, standup):
        """The destination day does not narrow which event is moved."""
        response = calendar_agent.process("reschedule Standup to tomorrow at 10:00", [standup])
        assert response.success
        assert response.side_effect.action == "update"
        assert response.side_effect.event_id == "e-standup"
        assert response.side_effect.event.start_time == at(10, days=1)
        assert response.side_effect.event.end_time == at(11, days=1)

    def test_source_day_narrows_targets(self, calendar_agent):
        today = make_event("s1", "Standup", at(9))
        tomorrow = make_event("s2", "Standup", at(9, days=1))
        response = calendar_agent.process("move Standup today to tomorrow at 11:00",
                                          [today, tomorrow])
        assert response.side_effect.event_id == "s1"
        assert response.side_effect.event.start_time == at(11, days=1)


# =============================================================================
# Find time / Analyze / Chat
# =============================================================================

class TestFindTime:

    def test_slots_for_today(self, calendar_agent, standup):
        response = calendar_agent.process("when am I free?", [standup])
        assert response.data["count"] == 8
        assert "09:00 - 10:00" in response.message
        assert "14:00 - 15:00" not in response.message
        assert response.side_effect is None

    def test_fully_booked_day(self, calendar_agent):
        day = make_event("x", "Offsite", at(0), hours=24)
        response = calendar_agent.process("any free slots?", [day])
        assert response.data["count"] == 0
        assert response.message


class TestAnalyze:

    def test_statistics(self, calendar_agent):
        events = [
            make_event("a", "Deep work", at(10, days=-2), hours=2),          # Monday
            make_event("b", "Sync", at(14), category="meeting"),               # Wednesday
            make_event("c", "Dinner", at(19, days=7), category="personal"),    # next week
        ]
        stats = calendar_agent.process("analyze my calendar", events).data["stats"]
        assert stats["total"] == 3
        assert stats["work"] == 1
        assert stats["meeting"] == 1
        assert stats["personal"] == 1
        assert stats["week_events"] == 2
        assert stats["avg_duration_hours"] == 1.5
        assert stats["busy_level"] == 20

    def test_empty_calendar(self, calendar_agent):
        response = calendar_agent.process("analyze my calendar", [])
        stats = response.data["stats"]
        assert stats["avg_duration_hours"] == 0
        assert stats["busy_level"] == 0

    def test_busy_level_is_capped(self, calendar_agent):
        events = [make_event(f"e{i}", f"Block {i}", at(9) + timedelta(minutes=10 * i),
                             hours=0.1) for i in range(12)]
        stats = calendar_agent.analyze_events(events)
        assert stats["busy_level"] == 100


class TestChat:

    def test_round_robin_fallback(self, store, mock_config):
        agent = CalendarAgent(store, mock_config, chooser=RoundRobinChooser(), now=lambda: NOW)
        first = agent.process("hello there", [])
        second = agent.process("hello there", [])
        assert first.message == CHAT_PROMPTS[0]
        assert second.message == CHAT_PROMPTS[1]

    def test_random_chooser_is_seedable(self):
        a = RandomChooser(random.Random(7)).choose(CHAT_PROMPTS)
        b = RandomChooser(random.Random(7)).choose(CHAT_PROMPTS)
        assert a == b
        assert a in CHAT_PROMPTS

    def test_empty_options_rejected(self):
        with pytest.raises(ValueError):
            RoundRobinChooser().choose([])


# =============================================================================
# Error handling
# =============================================================================

class TestErrorHandling:
    """Only Event Store failures escape as exceptions."""

    def test_store_unavailable_propagates(self, mock_config):
        broken = MagicMock()
        broken.query.side_effect = EventStoreUnavailableError("db down")
        agent = CalendarAgent(broken, mock_config, now=lambda: NOW)
        with pytest.raises(EventStoreUnavailableError):
            agent.process("view today")

    def test_os_error_is_wrapped(self, mock_config):
        broken = MagicMock()
        broken.query.side_effect = OSError("disk gone")
        agent = CalendarAgent(broken, mock_config, now=lambda: NOW)
        with pytest.raises(EventStoreUnavailableError):
            agent.process("view today")

    def test_no_store_configured(self, mock_config):
        agent = CalendarAgent(None, mock_config, now=lambda: NOW)
        with pytest.raises(EventStoreUnavailableError):
            agent.handle("view today")

    def test_response_to_dict(self, calendar_agent):
        response = calendar_agent.process("create a meeting at 14:00", [])
        data = response.to_dict()
        assert data["side_effect"]["action"] == "create"
        assert data["data"]["intent"]["type"] == "create"

    @pytest.mark.parametrize("text", ["", "???", "delete", "move", "create"])
    def test_messages_are_never_empty(self, calendar_agent, standup, text):
        response = calendar_agent.process(text, [standup])
        assert response.message.strip()
