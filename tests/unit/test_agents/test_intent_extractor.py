"""
Unit tests for the IntentExtractor.
Tests rule precedence, confidence values and field extraction
(title, times, location, category, all-day flag).
"""

import pytest
from datetime import datetime, timedelta, timezone
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from smartcal.agents.intent_extractor import DEFAULT_TITLE, IntentExtractor, parse_intent

UTC = timezone.utc
# Wednesday
NOW = datetime(2026, 10, 14, 8, 0, tzinfo=UTC)


def at(hour, minute=0, days=0):
    return datetime(2026, 10, 14, hour, minute, tzinfo=UTC) + timedelta(days=days)


@pytest.fixture
def extractor():
    return IntentExtractor(tz=UTC, now=lambda: NOW)


# =============================================================================
# Classification
# =============================================================================

class TestClassification:
    """Each keyword family maps to its intent with a fixed confidence."""

    @pytest.mark.parametrize("text,intent_type,confidence", [
        ("create a meeting at 14:00", "create", 0.9),
        ("view today", "query", 0.8),
        ("when am I free?", "find_time", 0.7),
        ("delete Dentist", "delete", 0.8),
        ("analyze my calendar", "analyze", 0.6),
        ("reschedule Dentist to 16:00", "update", 0.7),
        ("hello there", "chat", 0.5),
    ])
    def test_intent_types(self, extractor, text, intent_type, confidence):
        intent = extractor.parse(text)
        assert intent.type == intent_type
        assert intent.confidence == confidence

    def test_empty_input_is_chat(self, extractor):
        intent = extractor.parse("")
        assert intent.type == "chat"
        assert intent.confidence == 0.5

    def test_none_input_is_chat(self, extractor):
        assert extractor.parse(None).type == "chat"

    def test_keywords_match_whole_words_only(self, extractor):
        """'address' does not contain the verb 'add', 'Review' not 'view'."""
        assert extractor.parse("what is the address").type == "chat"
        assert extractor.parse("Review").type == "chat"

    def test_chinese_keywords(self, extractor):
        assert extractor.parse("查看日程").type == "query"
        assert extractor.parse("删除会议").type == "delete"


class TestPrecedence:
    """Overlapping vocabularies resolve create > update > query > find_time > delete > analyze."""

    def test_create_beats_query(self, extractor):
        assert extractor.parse("schedule a review today at 10:00").type == "create"

    def test_query_beats_delete(self, extractor):
        assert extractor.parse("cancel today's standup").type == "query"

    def test_query_beats_find_time(self, extractor):
        assert extractor.parse("free time tomorrow").type == "query"

    def test_find_time_beats_delete(self, extractor):
        assert extractor.parse("remove my free slot").type == "find_time"

    def test_delete_beats_analyze(self, extractor):
        assert extractor.parse("remove the weekly report").type == "delete"

    def test_update_beats_analyze(self, extractor):
        assert extractor.parse("update the stats meeting").type == "update"

    def test_update_beats_query(self, extractor):
        intent = extractor.parse("reschedule Standup to tomorrow at 10:00")
        assert intent.type == "update"
        assert intent.title == "Standup"
        assert intent.start_time == at(10, days=1)

    def test_update_beats_find_time(self, extractor):
        assert extractor.parse("change the time of Standup").type == "update"

    def test_create_beats_update(self, extractor):
        assert extractor.parse("schedule a review to move the launch").type == "create"


# =============================================================================
# Field extraction
# =============================================================================

class TestCreateExtraction:
    """Tests for create intent fields."""

    def test_title_time_and_default_end(self, extractor):
        intent = extractor.parse("create a meeting at 14:00")
        assert intent.title == "meeting"
        assert intent.start_time == at(14)
        assert intent.end_time == at(15)
        assert intent.category == "meeting"
        assert intent.all_day is False
        assert intent.location is None

    def test_tomorrow_and_location(self, extractor):
        intent = extractor.parse("create team meeting tomorrow at 14:00 in Room 4")
        assert intent.title == "team meeting"
        assert intent.start_time == at(14, days=1)
        assert intent.location == "Room 4"

    def test_location_before_time(self, extractor):
        intent = extractor.parse("add lunch at Cafe Roma at 12:30")
        assert intent.title == "lunch"
        assert intent.location == "Cafe Roma"
        assert intent.start_time == at(12, 30)

    def test_meridiem_time(self, extractor):
        intent = extractor.parse("book call at 3pm tomorrow")
        assert intent.title == "call"
        assert intent.start_time == at(15, days=1)

    def test_explicit_range(self, extractor):
        intent = extractor.parse("create review from 14:00 to 15:30")
        assert intent.start_time == at(14)
        assert intent.end_time == at(15, 30)

    def test_duration(self, extractor):
        intent = extractor.parse("create workshop at 10:00 for 2 hours")
        assert intent.title == "workshop"
        assert intent.end_time == at(12)

    def test_fullwidth_colon(self, extractor):
        intent = extractor.parse("create sync at 9：15")
        assert intent.start_time == at(9, 15)

    def test_weekday_is_next_occurrence(self, extractor):
        intent = extractor.parse("schedule retro friday at 16:00")
        assert intent.start_time == at(16, days=2)

    def test_no_time(self, extractor):
        intent = extractor.parse("create lunch")
        assert intent.title == "lunch"
        assert intent.start_time is None
        assert intent.end_time is None

    def test_placeholder_title(self, extractor):
        intent = extractor.parse("create at 10:00")
        assert intent.title == DEFAULT_TITLE

    def test_all_day(self, extractor):
        intent = extractor.parse("add holiday party tomorrow all day")
        assert intent.all_day is True
        assert intent.title == "holiday party"
        assert intent.category == "holiday"
        assert intent.start_time == at(0, days=1)

    def test_default_category_is_work(self, extractor):
        assert extractor.parse("create planning at 11:00").category == "work"

    def test_health_category(self, extractor):
        assert extractor.parse("add dentist appointment at 8:00").category == "health"

    def test_chinese_create(self, extractor):
        intent = extractor.parse("明天下午3点创建会议")
        assert intent.type == "create"
        assert intent.title == "会议"
        assert intent.start_time == at(15, days=1)
        assert intent.category == "meeting"


class TestOtherExtraction:

    def test_query_keeps_text(self, extractor):
        assert extractor.parse("view tomorrow").query == "view tomorrow"

    def test_delete_title(self, extractor):
        intent = extractor.parse("delete the Review this week")
        assert intent.title == "Review"
        assert intent.query == "delete the Review this week"

    def test_delete_without_title(self, extractor):
        assert extractor.parse("delete").title is None

    def test_update_title_and_time(self, extractor):
        intent = extractor.parse("move Dentist to 16:00")
        assert intent.type == "update"
        assert intent.title == "Dentist"
        assert intent.start_time == at(16)

    def test_update_time_comes_from_destination(self, extractor):
        intent = extractor.parse("move Dentist from 10:00 to 16:00")
        assert intent.start_time == at(16)

    def test_update_destination_day(self, extractor):
        intent = extractor.parse("move Standup tomorrow to today at 11:00")
        assert intent.start_time == at(11)

    def test_has_date_reference(self, extractor):
        assert extractor.has_date_reference("move it to tomorrow")
        assert extractor.has_date_reference("on 2026-11-02")
        assert extractor.has_date_reference("next monday")
        assert not extractor.has_date_reference("move it to 16:00")


def test_parse_intent_wrapper():
    intent = parse_intent("create a meeting at 14:00", tz=UTC, now=lambda: NOW)
    assert intent.type == "create"
    assert intent.start_time == at(14)
