"""
Turn a caller's spoken time preference into a calendar search window.

Only the phrases a receptionist hears most are understood: a day
("today", "tomorrow", "Thursday", "next week"), a part of the day
("morning", "afternoon", "evening"), and a clock time ("at 3",
"after 2:30 pm", "before noon"). Anything else searches the default
window, which is the same as no preference.
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

NOON = 12 * 60
AFTERNOON_END = 17 * 60

_HOUR_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}
_HOUR = r"(\d{1,2}|" + "|".join(_HOUR_WORDS) + r")"
_MERIDIEM = r"(a\.?\s?m\.?|p\.?\s?m\.?)(?![a-z])"

_TIME_EXPRESSION = re.compile(
    r"\b(today|tonight|tomorrow|next week|this week|weekend|morning|afternoon|evening|"
    r"noon|midday|" + "|".join(WEEKDAYS) + r")\b"
    r"|\b\d{1,2}(:\d{2})?\s*" + _MERIDIEM +
    r"|\b\d{1,2}:\d{2}\b"
    r"|\b(at|after|before|around|by)\s+" + _HOUR + r"\b"
    r"|\bo'?clock\b",
    re.IGNORECASE,
)

_WEEKDAY = re.compile(r"\b(next\s+)?(" + "|".join(WEEKDAYS) + r")\b", re.IGNORECASE)
_CLOCK = re.compile(
    r"\b(at|after|around|before|by)?\s*" + _HOUR + r"(?::(\d{2}))?\s*" + _MERIDIEM + r"?(?=\W|$)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SearchWindow:
    """Calendar query bounds plus an optional time-of-day filter (local minutes)."""

    start: datetime
    end: datetime
    earliest_minute: Optional[int] = None
    latest_minute: Optional[int] = None

    def accepts(self, slot_start: datetime) -> bool:
        if not self.start <= slot_start < self.end:
            return False
        local = slot_start.astimezone(self.start.tzinfo)
        minute = local.hour * 60 + local.minute
        if self.earliest_minute is not None and minute < self.earliest_minute:
            return False
        if self.latest_minute is not None and minute >= self.latest_minute:
            return False
        return True


def contains_time_expression(text: Optional[str]) -> bool:
    """True when the utterance names a day, a part of the day, or a clock time."""
    return bool(text and _TIME_EXPRESSION.search(text))


def default_window(now: datetime, search_days: int) -> SearchWindow:
    return SearchWindow(start=now, end=now + timedelta(days=search_days))


def _start_of_day(now: datetime, days_ahead: int) -> datetime:
    day = (now + timedelta(days=days_ahead)).date()
    return datetime.combine(day, time.min, tzinfo=now.tzinfo)


def _clock_minute(match: re.Match[str]) -> Optional[int]:
    raw_hour, raw_minute, meridiem = match.group(2), match.group(3), match.group(4)
    hour = _HOUR_WORDS.get(raw_hour.lower()) if not raw_hour.isdigit() else int(raw_hour)
    if hour is None or hour > 23:
        return None
    minute = int(raw_minute) if raw_minute else 0
    if minute > 59:
        return None
    if meridiem:
        is_pm = meridiem.lower().startswith("p")
        if is_pm and hour < 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0
    elif 1 <= hour <= 7:
        # Nobody books a tax consultation at 3 in the morning.
        hour += 12
    return hour * 60 + minute


def _day_bounds(text: str, now: datetime, search_days: int) -> tuple[datetime, datetime]:
    if re.search(r"\b(today|tonight)\b", text):
        return now, _start_of_day(now, 1)
    if re.search(r"\btomorrow\b", text):
        return _start_of_day(now, 1), _start_of_day(now, 2)

    weekday = _WEEKDAY.search(text)
    if weekday:
        ahead = (WEEKDAYS.index(weekday.group(2).lower()) - now.weekday()) % 7
        if ahead == 0 and weekday.group(1):
            ahead = 7
        start = now if ahead == 0 else _start_of_day(now, ahead)
        return start, _start_of_day(now, ahead + 1)

    if re.search(r"\bnext week\b", text):
        monday = 7 - now.weekday()
        return _start_of_day(now, monday), _start_of_day(now, monday + 7)
    if re.search(r"\bthis week\b", text):
        return now, _start_of_day(now, 7 - now.weekday())

    return now, now + timedelta(days=search_days)


def parse_time_preference(text: Optional[str], now: datetime, search_days: int) -> SearchWindow:
    """Build the search window for a preference such as "Thursday afternoon".

    ``now`` must be timezone-aware and in the firm's timezone; the
    time-of-day bounds are interpreted in that zone.
    """
    if not text:
        return default_window(now, search_days)

    lowered = text.lower()
    start, end = _day_bounds(lowered, now, search_days)
    start = max(start, now)

    earliest: Optional[int] = None
    latest: Optional[int] = None
    if re.search(r"\bmorning\b", lowered):
        latest = NOON
    elif re.search(r"\bafternoon\b", lowered):
        earliest, latest = NOON, AFTERNOON_END
    elif re.search(r"\b(evening|tonight)\b", lowered):
        earliest = AFTERNOON_END
    elif re.search(r"\b(before|by) (noon|midday)\b", lowered):
        latest = NOON
    elif re.search(r"\b(noon|midday)\b", lowered):
        earliest = NOON

    for clock in _CLOCK.finditer(lowered):
        has_anchor = clock.group(1) or clock.group(3) or clock.group(4)
        if not has_anchor:
            continue
        minute = _clock_minute(clock)
        if minute is None:
            continue
        if clock.group(1) in ("before", "by"):
            latest = minute
        else:
            earliest = minute
        break

    return SearchWindow(start=start, end=end, earliest_minute=earliest, latest_minute=latest)
