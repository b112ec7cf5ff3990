"""Natural-language time and duration parsing.

Pure functions: every result is computed from the text and a reference
"now". Returned datetimes are timezone-aware, in the timezone of the
reference (``settings.default_timezone`` when no reference is given).
A ``None`` result means "ask the user", never "default to now".
"""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.core.config import settings

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_WEEKDAY_RE = "|".join(WEEKDAYS)

# Longest first: "day after tomorrow" contains "tomorrow".
RELATIVE_DAYS: tuple[tuple[str, int], ...] = (
    ("day after tomorrow", 2),
    ("day after", 2),
    ("tomorrow", 1),
    ("tonight", 0),
    ("today", 0),
)

PART_OF_DAY_HOURS: tuple[tuple[str, int], ...] = (
    ("morning", 9),
    ("afternoon", 14),
    ("evening", 19),
    ("night", 21),
)
TONIGHT_HOUR = 20
DEFAULT_HOUR = 9

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NEXT_WEEKDAY = re.compile(rf"\bnext\s+({_WEEKDAY_RE})\b")
_THIS_WEEKDAY = re.compile(rf"\bthis\s+({_WEEKDAY_RE})\b")
_IN_OFFSET = re.compile(r"\bin\s+(an?|\d+)\s*(hours?|hrs?|minutes?|mins?)\b")
_STANDALONE_TIME = re.compile(r"^(?:at\s+)?\d{1,2}(?::\d{2})?\s*(?:am|pm)?$")
_STANDALONE_WEEKDAY = re.compile(rf"^(?:on\s+)?({_WEEKDAY_RE})$")
_ANY_WEEKDAY = re.compile(rf"\b(?:on\s+)?({_WEEKDAY_RE})\b")

_TIME_PATTERNS = (
    re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)\b"),
    re.compile(r"(\d{1,2})\s*(am|pm)\b"),
    re.compile(r"(\d{1,2}):(\d{2})"),
)

_HOURS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?|h)\b")
_MINUTES_RE = re.compile(r"(\d+)\s*(?:minutes?|mins?|m)\b")
_BARE_INT_RE = re.compile(r"^\d+$")


def local_now(tz_name: str | None = None) -> datetime:
    return datetime.now(ZoneInfo(tz_name or settings.default_timezone))


def extract_time_from_string(text: str) -> tuple[int, int] | None:
    """Return (hours, minutes) for the first clock time in the text.

    Supports "3:30pm", "3 pm" and 24-hour "15:00". 12pm stays 12, 12am
    becomes 0. "noon" and "midnight" are accepted as words.
    """
    s = text.lower()
    for pattern in _TIME_PATTERNS:
        m = pattern.search(s)
        if not m:
            continue
        groups = m.groups()
        hours = int(groups[0])
        if len(groups) == 3:
            minutes, meridiem = int(groups[1]), groups[2]
        elif groups[1] in ("am", "pm"):
            minutes, meridiem = 0, groups[1]
        else:
            minutes, meridiem = int(groups[1]), None

        if meridiem == "pm" and hours < 12:
            hours += 12
        elif meridiem == "am" and hours == 12:
            hours = 0

        if hours > 23 or minutes > 59:
            return None
        return hours, minutes

    if re.search(r"\bnoon\b|\bmidday\b", s):
        return 12, 0
    if re.search(r"\bmidnight\b", s):
        return 0, 0
    return None


def _at(day: date, hours: int, minutes: int, tz) -> datetime:
    return datetime.combine(day, time(hours, minutes), tzinfo=tz)


def _default_hour(s: str, pattern: str) -> int:
    if pattern == "tonight":
        return TONIGHT_HOUR
    for word, hour in PART_OF_DAY_HOURS:
        if word in s:
            return hour
    return DEFAULT_HOUR


def _weekday_on_or_after(now: datetime, weekday: str, allow_today: bool) -> date:
    delta = WEEKDAYS.index(weekday) - now.weekday()
    if delta < 0 or (delta == 0 and not allow_today):
        delta += 7
    return now.date() + timedelta(days=delta)


def _clock_or_default(s: str) -> tuple[int, int]:
    return extract_time_from_string(s) or (DEFAULT_HOUR, 0)


def _parse_iso(s: str, tz) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(s.upper().replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(s[:10]), time(DEFAULT_HOUR, 0))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_natural_time(text: str, reference_now: datetime | None = None) -> datetime | None:
    """Convert a natural-language time expression to an absolute datetime.

    Resolution order:
      1. ISO date prefix ("2025-11-03", "2025-11-03T15:00:00+05:30")
      2. today / tonight / tomorrow / day after tomorrow, with a clock time
         or a part-of-day default (morning 9, afternoon 14, evening 19,
         night 21, tonight 20, otherwise 9)
      3. "next <weekday>", always at least one day ahead (7 when today is
         that weekday)
      4. "this <weekday>", today or later in the week; a day that has
         already passed rolls to next week
      5. "in N hours/minutes"
      6. a standalone clock time, rolled to tomorrow if already passed
      7. a bare weekday, same rule as "next <weekday>"
    """
    if not text:
        return None

    s = text.lower().strip()
    now = reference_now or local_now()
    tz = now.tzinfo or ZoneInfo(settings.default_timezone)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    if _ISO_PREFIX.match(s):
        parsed = _parse_iso(s, tz)
        if parsed is not None:
            return parsed

    for pattern, days in RELATIVE_DAYS:
        if pattern in s:
            day = now.date() + timedelta(days=days)
            clock = extract_time_from_string(s)
            if clock is None:
                clock = (_default_hour(s, pattern), 0)
            return _at(day, *clock, tz)

    m = _NEXT_WEEKDAY.search(s)
    if m:
        return _at(_weekday_on_or_after(now, m.group(1), allow_today=False), *_clock_or_default(s), tz)

    m = _THIS_WEEKDAY.search(s)
    if m:
        return _at(_weekday_on_or_after(now, m.group(1), allow_today=True), *_clock_or_default(s), tz)

    m = _IN_OFFSET.search(s)
    if m:
        amount = 1 if m.group(1) in ("a", "an") else int(m.group(1))
        unit = m.group(2)
        if unit.startswith(("hour", "hr")):
            return now + timedelta(hours=amount)
        return now + timedelta(minutes=amount)

    if _STANDALONE_TIME.match(s):
        clock = extract_time_from_string(s)
        if clock is not None:
            result = _at(now.date(), *clock, tz)
            if result <= now:
                result += timedelta(days=1)
            return result

    m = _STANDALONE_WEEKDAY.match(s)
    if m:
        return _at(_weekday_on_or_after(now, m.group(1), allow_today=False), DEFAULT_HOUR, 0, tz)

    return None


def find_natural_time(text: str, reference_now: datetime | None = None) -> datetime | None:
    """Find a time expression anywhere inside a sentence.

    ``parse_natural_time`` only accepts clock times and bare weekdays as the
    whole string; inside a sentence ("call Rohan at 3pm", "lunch on friday")
    they are picked up here with the same rules.
    """
    now = reference_now or local_now()
    parsed = parse_natural_time(text, now)
    if parsed is not None:
        return parsed

    s = text.lower()
    weekday = _ANY_WEEKDAY.search(s)
    clock = extract_time_from_string(s)
    if weekday:
        day = _weekday_on_or_after(now, weekday.group(1), allow_today=False)
        return _at(day, *(clock or (DEFAULT_HOUR, 0)), now.tzinfo)
    if clock:
        result = _at(now.date(), *clock, now.tzinfo)
        if result <= now:
            result += timedelta(days=1)
        return result
    return None


def parse_duration(text: str) -> int | None:
    """Duration in minutes.

    "1.5 hours" -> 90, "90 minutes" -> 90, "45" -> 45 (bare numbers are
    minutes), "1 hour 30 minutes" -> 90. Fractional hours are rounded to
    the nearest minute.
    """
    if not text:
        return None
    s = text.lower().strip()

    total: int | None = None
    hours = _HOURS_RE.search(s)
    if hours:
        total = int(float(hours.group(1)) * 60 + 0.5)
    elif re.search(r"\bhalf an? hour\b|\bhalf hour\b", s):
        total = 30
    elif re.search(r"\ban? hour\b", s):
        total = 60

    minutes = _MINUTES_RE.search(s)
    if minutes:
        total = (total or 0) + int(minutes.group(1))

    if total is not None:
        return total
    if _BARE_INT_RE.match(s):
        return int(s)
    return None


def format_for_display(dt: datetime) -> str:
    """"Mon 3 Nov, 3:00 PM" style rendering for replies."""
    hour = dt.hour % 12 or 12
    return f"{dt:%a} {dt.day} {dt:%b}, {hour}:{dt:%M} {dt:%p}"


def coerce_datetime(value, reference_now: datetime | None = None) -> datetime | None:
    """Datetime from an entity value: a datetime, an ISO string or a phrase."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = reference_now.tzinfo if reference_now and reference_now.tzinfo else ZoneInfo(settings.default_timezone)
            return value.replace(tzinfo=tz)
        return value
    return parse_natural_time(str(value), reference_now)


def day_bounds(dt: datetime) -> tuple[datetime, datetime]:
    """Start and end of the local day containing ``dt``."""
    start = datetime.combine(dt.date(), time(0, 0), tzinfo=dt.tzinfo)
    return start, start + timedelta(days=1)
