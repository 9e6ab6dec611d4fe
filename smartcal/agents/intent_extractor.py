"""
Intent Extractor for smartcal
Turns a free-text command into a typed Intent using ordered keyword rules.

Classification is an ordered list of (predicate, constructor) rules evaluated
top to bottom; the first matching rule wins. Several keyword families can
appear in one sentence ("schedule a review today"), so the rule order is the
tie-breaker and must stay fixed:

    create > update > query > find_time > delete > analyze > chat

English keywords match on word boundaries, CJK keywords by substring.
"""

from datetime import date, datetime, time as dt_time, timedelta, timezone, tzinfo
from typing import Any, Callable, List, Optional, Pattern, Tuple
import logging
import re

from ..core.models import Intent

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New event"
DEFAULT_CATEGORY = "work"
DEFAULT_DURATION_MINUTES = 60


def _compile(patterns: List[str]) -> List[Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


CREATE_KEYWORDS = _compile([
    r"\bcreate\b", r"\badd\b", r"\bschedule\b", r"\bbook\b", r"\bset\s+up\b",
    r"创建", r"添加", r"安排",
])
QUERY_KEYWORDS = _compile([
    r"\bview\b", r"\bshow\b", r"\blist\b", r"\bagenda\b",
    r"\btoday\b", r"\btomorrow\b",
    r"查看", r"今天", r"明天",
])
FIND_TIME_KEYWORDS = _compile([
    r"\bfree\b", r"\bavailable\b", r"\bavailability\b", r"\btime\b",
    r"空闲", r"可用", r"时间",
])
DELETE_KEYWORDS = _compile([
    r"\bdelete\b", r"\bcancel\b", r"\bremove\b", r"\bclear\b",
    r"删除", r"取消", r"移除", r"清除",
])
ANALYZE_KEYWORDS = _compile([
    r"\banaly[sz]e\b", r"\bstatistics\b", r"\bstats\b", r"\breport\b",
    r"分析", r"统计", r"报告",
])
UPDATE_KEYWORDS = _compile([
    r"\breschedule\b", r"\bmove\b", r"\bpostpone\b", r"\bchange\b", r"\bupdate\b",
    r"修改", r"更改", r"调整",
])

# "move X (from ...) to <destination>": the new time lives after the split
MOVE_DESTINATION = re.compile(r"\s(?:to|until|till)\s|到", re.IGNORECASE)

def split_move(text: str) -> Tuple[str, str]:
    """(source, destination) of a move command; destination is empty when not stated."""
    parts = MOVE_DESTINATION.split(text, maxsplit=1)
    if len(parts) == 1:
        return text, ""
    return parts[0], parts[1]


ALL_DAY_PATTERN = re.compile(r"\ball[\s-]day\b|\bwhole\s+day\b|全天|整天", re.IGNORECASE)

# Words that end a title or location span
MARKER_WORDS = r"(?:at|in|on|from|for|to|until|till|today|tonight|tomorrow|next|this)"
MARKER = (
    r"(?=\s+" + MARKER_WORDS + r"\b"
    r"|\s+\d|\s*[,.;!?]|$)"
)

# A title never starts with a marker word ("create at 10:00" has none)
TITLE_START = r"(?!" + MARKER_WORDS + r"\b)"

TITLE_PATTERNS = {
    "create": [
        re.compile(r"\b(?:create|add|schedule|book|set\s+up)\s+(?:(?:a|an|the|new|my)\s+)*"
                   + TITLE_START + r"(.+?)" + MARKER,
                   re.IGNORECASE),
        re.compile(r"(?:创建|添加|安排)(.+?)(?=在|到|时间|地点|$)"),
    ],
    "delete": [
        re.compile(r"\b(?:delete|cancel|remove|clear)\s+(?:(?:a|an|the|my|all)\s+)*"
                   + TITLE_START + r"(.+?)" + MARKER,
                   re.IGNORECASE),
        re.compile(r"(?:删除|取消|移除|清除)(.+?)(?=在|到|时间|$)"),
    ],
    "update": [
        re.compile(r"\b(?:reschedule|move|postpone|change|update)\s+(?:(?:a|an|the|my)\s+)*"
                   + TITLE_START + r"(.+?)" + MARKER,
                   re.IGNORECASE),
        re.compile(r"(?:修改|更改|调整)(.+?)(?=到|在|时间|$)"),
    ],
}

LOCATION_PATTERNS = [
    re.compile(
        r"\b(?:at|in)\s+((?!\d)[^,.;!?]+?)"
        r"(?=\s+(?:at|on|from|for|to|until|till|today|tonight|tomorrow|next|this)\b"
        r"|\s+\d{1,2}\s*(?:[:：]\s*\d{2}|am\b|pm\b|点)|\s*[,.;!?]|$)",
        re.IGNORECASE,
    ),
    re.compile(r"(?:在|地点)(.+?)(?=时间|到|创建|添加|安排|$)"),
]

# Ordered: first matching keyword decides the category
CATEGORY_KEYWORDS = [
    (re.compile(r"\bmeetings?\b|\bstandup\b|会议", re.IGNORECASE), "meeting"),
    (re.compile(r"\bwork\b|工作", re.IGNORECASE), "work"),
    (re.compile(r"\bpersonal\b|个人", re.IGNORECASE), "personal"),
    (re.compile(r"\bholiday\b|\bvacation\b|假期", re.IGNORECASE), "holiday"),
    (re.compile(r"\btravel\b|\btrip\b|\bflight\b|旅行", re.IGNORECASE), "travel"),
    (re.compile(r"\bhealth\b|\bdoctor\b|\bdentist\b|\bgym\b|健康", re.IGNORECASE), "health"),
]

# Time keywords for parsing (24-hour reference)
TIME_KEYWORDS = {
    "noon": (12, 0),
    "midnight": (0, 0),
    "morning": (9, 0),
    "afternoon": (14, 0),
    "evening": (18, 0),
    "night": (20, 0),
}

WEEKDAY_MAP = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

# Offsets in days from today; longer phrases first
RELATIVE_DAYS = [
    (re.compile(r"\bday\s+after\s+tomorrow\b|后天", re.IGNORECASE), 2),
    (re.compile(r"\btomorrow\b|明天", re.IGNORECASE), 1),
    (re.compile(r"\btoday\b|\btonight\b|今天|今晚", re.IGNORECASE), 0),
    (re.compile(r"\bnext\s+week\b|下周", re.IGNORECASE), 7),
]

CLOCK_PATTERN = re.compile(r"(\d{1,2})\s*[:：]\s*(\d{2})(?:\s*(am|pm)\b)?", re.IGNORECASE)
MERIDIEM_PATTERN = re.compile(r"\b(\d{1,2})\s*(am|pm)\b", re.IGNORECASE)
CJK_CLOCK_PATTERN = re.compile(r"(\d{1,2})\s*[点时](?:\s*(\d{1,2})\s*分?|(半))?")
RANGE_SEPARATOR = re.compile(r"^\s*(?:-|–|to|until|till|到|至)\s*", re.IGNORECASE)
DURATION_PATTERNS = [
    (re.compile(r"\bfor\s+(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b", re.IGNORECASE),
     lambda m: int(float(m.group(1)) * 60)),
    (re.compile(r"\bfor\s+(\d+)\s*(?:minutes?|mins?|m)\b", re.IGNORECASE),
     lambda m: int(m.group(1))),
]


class IntentExtractor:
    """
    Deterministic keyword/pattern extractor.

    Args:
        tz: Timezone extracted times are expressed in (UTC when None)
        now: Clock callable, injectable for tests
    """

    def __init__(self, tz: Optional[tzinfo] = None,
                 now: Optional[Callable[[], datetime]] = None):
        self.tz = tz or timezone.utc
        self._now = now or (lambda: datetime.now(self.tz))
        self.rules: List[Tuple[Callable[[str], bool], Callable[[str], Intent]]] = [
            (self._matches(CREATE_KEYWORDS), self._build_create),
            (self._matches(UPDATE_KEYWORDS), self._build_update),
            (self._matches(QUERY_KEYWORDS), self._build_query),
            (self._matches(FIND_TIME_KEYWORDS), self._build_find_time),
            (self._matches(DELETE_KEYWORDS), self._build_delete),
            (self._matches(ANALYZE_KEYWORDS), self._build_analyze),
        ]

    def parse(self, text: str) -> Intent:
        """Classify text; unmatched or empty input yields a chat intent."""
        text = (text or "").strip()
        if text:
            for predicate, build in self.rules:
                if predicate(text):
                    intent = build(text)
                    logger.debug("Parsed %r as %s (%.1f)", text, intent.type, intent.confidence)
                    return intent
        return Intent(type="chat", confidence=0.5, query=text)

    # =========================================================================
    # Rule constructors
    # =========================================================================

    @staticmethod
    def _matches(patterns: List[Pattern]) -> Callable[[str], bool]:
        return lambda text: any(p.search(text) for p in patterns)

    def _build_create(self, text: str) -> Intent:
        all_day = bool(ALL_DAY_PATTERN.search(text))
        working = ALL_DAY_PATTERN.sub(" ", text)
        start_time, end_time = self.extract_times(working)
        if all_day:
            anchor = self.extract_date(working)
            start_time = datetime.combine(anchor, dt_time.min, tzinfo=self.tz)
            end_time = start_time

        return Intent(
            type="create",
            confidence=0.9,
            title=self.extract_title(working, "create") or DEFAULT_TITLE,
            start_time=start_time,
            end_time=end_time,
            location=self.extract_location(working),
            category=self.extract_category(text),
            all_day=all_day,
            query=text,
        )

    def _build_query(self, text: str) -> Intent:
        return Intent(type="query", confidence=0.8, query=text)

    def _build_find_time(self, text: str) -> Intent:
        return Intent(type="find_time", confidence=0.7, query=text)

    def _build_delete(self, text: str) -> Intent:
        return Intent(
            type="delete",
            confidence=0.8,
            title=self.extract_title(text, "delete"),
            query=text,
        )

    def _build_analyze(self, text: str) -> Intent:
        return Intent(type="analyze", confidence=0.6, query=text)

    def _build_update(self, text: str) -> Intent:
        _, destination = split_move(text)
        start_time, end_time = self.extract_times(destination or text)
        return Intent(
            type="update",
            confidence=0.7,
            title=self.extract_title(text, "update"),
            start_time=start_time,
            end_time=end_time,
            query=text,
        )

    # =========================================================================
    # Field extraction
    # =========================================================================

    def extract_title(self, text: str, verb_family: str) -> Optional[str]:
        """Text between the verb and the next time/location/date marker."""
        for pattern in TITLE_PATTERNS[verb_family]:
            match = pattern.search(text)
            if match:
                title = self._clean_title(match.group(1))
                if title:
                    return title
        return None

    @staticmethod
    def _clean_title(raw: str) -> str:
        title = re.sub(r"\s+", " ", raw).strip(" ,.-:：\"'“”")
        # "event called Team lunch" -> "Team lunch"; a bare "event" stays
        stripped = re.sub(r"^(?:event|appointment)\s+(?:for\s+|called\s+|named\s+)?", "",
                          title, flags=re.IGNORECASE)
        return stripped or title

    def extract_location(self, text: str) -> Optional[str]:
        """First "at/in <place>" span that is not a time expression."""
        for pattern in LOCATION_PATTERNS:
            for match in pattern.finditer(text):
                candidate = match.group(1).strip()
                if len(candidate) > 1 and not self._is_time_word(candidate):
                    return candidate
        return None

    @staticmethod
    def _is_time_word(word: str) -> bool:
        """Check if word is a time-related term that shouldn't be treated as location."""
        word_lower = re.sub(r"^the\s+", "", word.lower().strip())
        time_words = set(TIME_KEYWORDS) | set(WEEKDAY_MAP) | {"am", "pm", "today", "tomorrow"}
        if word_lower in time_words:
            return True
        return bool(re.match(r"^\d{1,2}(?::\d{2})?\s*(?:am|pm)?$", word_lower))

    @staticmethod
    def extract_category(text: str) -> str:
        for pattern, category in CATEGORY_KEYWORDS:
            if pattern.search(text):
                return category
        return DEFAULT_CATEGORY

    @staticmethod
    def has_date_reference(text: str) -> bool:
        """True when text names a day (relative word, ISO date or weekday)."""
        if any(pattern.search(text) for pattern, _ in RELATIVE_DAYS):
            return True
        if re.search(r"\b\d{4}-\d{2}-\d{2}\b", text):
            return True
        return any(re.search(rf"\b{d}\b", text, re.IGNORECASE) for d in WEEKDAY_MAP)

    def extract_date(self, text: str) -> date:
        """Date the command refers to; today when nothing is stated."""
        today = self._now().astimezone(self.tz).date()

        for pattern, offset in RELATIVE_DAYS:
            if pattern.search(text):
                return today + timedelta(days=offset)

        explicit = re.search(r"\b(\d{4})-(\d{2})-(\d{2})\b", text)
        if explicit:
            try:
                return date(int(explicit.group(1)), int(explicit.group(2)), int(explicit.group(3)))
            except ValueError:
                pass

        for day_name, weekday in WEEKDAY_MAP.items():
            if re.search(rf"\b{day_name}\b", text, re.IGNORECASE):
                days_ahead = weekday - today.weekday()
                if days_ahead <= 0:
                    days_ahead += 7
                return today + timedelta(days=days_ahead)

        return today

    def extract_times(self, text: str) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Start and end of the event described by text.

        End defaults to start + 1 hour unless a range ("14:00-15:30",
        "from 9:00 to 11:00") or a duration ("for 2 hours") is given.
        """
        found = self._find_clock(text)
        if found is None:
            return None, None
        (hour, minute), match_end = found

        anchor = self.extract_date(text)
        start = datetime.combine(anchor, dt_time(hour, minute), tzinfo=self.tz)

        end = None
        separator = RANGE_SEPARATOR.match(text[match_end:])
        if separator:
            rest = text[match_end + separator.end():]
            end_clock = self._find_clock(rest, anchored=True)
            if end_clock:
                end_hour, end_minute = end_clock[0]
                end = datetime.combine(anchor, dt_time(end_hour, end_minute), tzinfo=self.tz)
                if end <= start:
                    end = None

        if end is None:
            for pattern, to_minutes in DURATION_PATTERNS:
                match = pattern.search(text)
                if match:
                    end = start + timedelta(minutes=to_minutes(match))
                    break

        if end is None:
            end = start + timedelta(minutes=DEFAULT_DURATION_MINUTES)
        return start, end

    def _find_clock(self, text: str,
                    anchored: bool = False) -> Optional[Tuple[Tuple[int, int], int]]:
        """((hour, minute), end offset of the match) for the first time of day."""
        candidates = []
        for pattern in (CLOCK_PATTERN, MERIDIEM_PATTERN, CJK_CLOCK_PATTERN):
            match = pattern.match(text) if anchored else pattern.search(text)
            if match:
                parsed = self._clock_from_match(pattern, match, text)
                if parsed is not None:
                    candidates.append((match.start(), parsed, match.end()))
        if not candidates:
            if anchored:
                return None
            for keyword, clock in TIME_KEYWORDS.items():
                if re.search(rf"\b{keyword}\b", text, re.IGNORECASE):
                    return clock, len(text)
            return None
        _, clock, end = min(candidates, key=lambda c: c[0])
        return clock, end

    @staticmethod
    def _clock_from_match(pattern: Pattern, match: Any, text: str) -> Optional[Tuple[int, int]]:
        hour = int(match.group(1))
        if pattern is CLOCK_PATTERN:
            minute = int(match.group(2))
            meridiem = match.group(3)
        elif pattern is MERIDIEM_PATTERN:
            minute = 0
            meridiem = match.group(2)
        else:
            minute = 30 if match.group(3) else int(match.group(2) or 0)
            meridiem = "pm" if re.search(r"下午|晚上", text) and hour < 12 else None

        if meridiem:
            meridiem = meridiem.lower()
            if meridiem == "pm" and hour != 12:
                hour += 12
            elif meridiem == "am" and hour == 12:
                hour = 0

        if hour > 23 or minute > 59:
            return None
        return hour, minute


def parse_intent(text: str, tz: Optional[tzinfo] = None,
                 now: Optional[Callable[[], datetime]] = None) -> Intent:
    """Module-level convenience wrapper around IntentExtractor.parse."""
    return IntentExtractor(tz=tz, now=now).parse(text)
