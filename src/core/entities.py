"""Deterministic entity extraction: RouteDecision + message text -> Action.

Everything here is pure. Times are resolved against the caller's ``now``
with the time parser; names come from the phrase router extractors.
"""

import re
from datetime import datetime, timedelta
from typing import Any

from src.core.phrase_router import (
    extract_contact_name,
    extract_document_name,
    extract_document_question,
    extract_gmail_search_sender,
    extract_web_search_query,
)
from src.core.schemas.action import Action, ActionType
from src.core.schemas.route import RouteDecision, RouteType
from src.core.time_parser import (
    WEEKDAYS,
    day_bounds,
    find_natural_time,
    parse_duration,
    parse_natural_time,
)

ROUTE_ACTIONS: dict[RouteType, ActionType] = {
    RouteType.daily_briefing: ActionType.daily_briefing,
    RouteType.tasks: ActionType.tasks_read,
    RouteType.calendar_read: ActionType.calendar_read,
    RouteType.calendar_create: ActionType.calendar_create,
    RouteType.calendar_update: ActionType.calendar_update,
    RouteType.calendar_delete: ActionType.calendar_delete,
    RouteType.gmail_check: ActionType.gmail_check,
    RouteType.gmail_search: ActionType.gmail_search,
    RouteType.gmail_mark_read: ActionType.gmail_mark_read,
    RouteType.reminder_create: ActionType.reminder_create,
    RouteType.reminder_snooze: ActionType.reminder_snooze,
    RouteType.contact_lookup: ActionType.contact_lookup,
    RouteType.drive_search: ActionType.drive_search,
    RouteType.document_qna: ActionType.document_qna,
    RouteType.document_list: ActionType.document_list,
    RouteType.document_recall: ActionType.document_recall,
    RouteType.web_search: ActionType.web_search,
}

_WEEKDAY_RE = "|".join(WEEKDAYS)

# Words that end a "with <person>" capture.
_PERSON_STOP_WORDS = frozenset(
    {
        "at", "on", "for", "to", "in", "from", "about", "regarding", "re",
        "today", "tonight", "tomorrow", "next", "this", "and", "by", "after",
        "before", "around", "morning", "afternoon", "evening", "day",
        *WEEKDAYS,
    }
)

_DAY_EXPRESSION = re.compile(
    rf"\b(?:day after tomorrow|today|tonight|tomorrow|(?:next|this)\s+(?:{_WEEKDAY_RE})|(?:on\s+)?(?:{_WEEKDAY_RE}))\b"
)
_TIME_PHRASES = re.compile(
    rf"\b(?:in\s+(?:an?|\d+)\s*(?:hours?|hrs?|minutes?|mins?)"
    rf"|(?:at|by|around)\s+(?:\d{{1,2}}(?::\d{{2}})?\s*(?:am|pm)?|noon|midnight)"
    rf"|\d{{1,2}}(?::\d{{2}})?\s*(?:am|pm)"
    rf"|(?:the\s+)?day after tomorrow|tomorrow|today|tonight"
    rf"|(?:this|next)\s+(?:{_WEEKDAY_RE}|morning|afternoon|evening|week)"
    rf"|(?:on\s+)?(?:{_WEEKDAY_RE})"
    rf"|in the (?:morning|afternoon|evening)|(?:this\s+)?(?:morning|afternoon|evening))\b",
    re.IGNORECASE,
)
_DURATION_PHRASE = re.compile(
    r"\bfor\s+(\d+(?:\.\d+)?\s*(?:hours?|hrs?|minutes?|mins?)(?:\s+\d+\s*(?:minutes?|mins?))?|an? hour|half an hour)\b",
    re.IGNORECASE,
)
_TITLE_PATTERNS = (
    re.compile(r"\b(?:called|titled|named)\s+[\"']?(.+?)[\"']?\s*(?=\b(?:at|on|for|with|tomorrow|today|next|this)\b|[?.!]*$)", re.IGNORECASE),
    re.compile(r"[\"“](.+?)[\"”]"),
)
_EVENT_REFERENCE = re.compile(
    r"\b(?:reschedule|move|shift|push|postpone|change|bring forward|cancel|delete|remove)\s+"
    r"(?:the\s+|my\s+|our\s+|that\s+)?(.+?)"
    r"(?=\s+(?:with|to|on|at|for|from|tomorrow|today|tonight|next|this|by|till|until)\b|[?.!]*$)",
    re.IGNORECASE,
)
_REMINDER_BODY = re.compile(r"\bremind me\b\s*(.*)$", re.IGNORECASE | re.DOTALL)
_REMINDER_LEAD = re.compile(r"^(?:to|about|that|of)\s+", re.IGNORECASE)
_TASK_INDEX = re.compile(r"\btask\s*(?:#|no\.?\s*|number\s+)?(\d{1,3})\b", re.IGNORECASE)
_DAYS_BACK = re.compile(r"\b(?:last|past)\s+(\d{1,3})\s+days?\b", re.IGNORECASE)
_DRIVE_QUERY_PATTERNS = (
    re.compile(r"\b(?:search|find|look)(?: for)?\s+(.+?)\s+(?:in|on|from)\s+(?:my\s+)?(?:google\s+)?drive\b", re.IGNORECASE),
    re.compile(r"\bdrive\s+(?:for|:)\s*(.+)", re.IGNORECASE),
    re.compile(r"\b(?:search|find|look in)\s+(?:my\s+)?(?:google\s+)?drive\s+(.+)", re.IGNORECASE),
)
_PUNCT = " \t\n?.!,;:\"'"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = re.sub(r"\s+", " ", value).strip(_PUNCT)
    return value or None


def extract_person(text: str) -> str | None:
    """Name after "with" ("meeting with Priya tomorrow" -> "Priya")."""
    m = re.search(r"\bwith\s+(.+)$", text, re.IGNORECASE)
    if not m:
        return None
    words: list[str] = []
    for word in m.group(1).split():
        bare = word.strip(_PUNCT)
        if not bare or bare.lower() in _PERSON_STOP_WORDS or any(ch.isdigit() for ch in bare):
            break
        words.append(bare)
        if len(words) == 3 or word[-1] in ",.?!":
            break
    if not words:
        return None
    return " ".join(w if w[0].isupper() else w.capitalize() for w in words)


def extract_day(text: str, now: datetime) -> datetime | None:
    """Day mentioned in the text (as a datetime on that day), ignoring clock times."""
    m = _DAY_EXPRESSION.search(text.lower())
    if not m:
        return None
    return parse_natural_time(m.group(0), now)


def extract_duration(text: str) -> int | None:
    m = _DURATION_PHRASE.search(text)
    return parse_duration(m.group(1)) if m else None


def extract_task_index(text: str) -> int | None:
    m = _TASK_INDEX.search(text)
    return int(m.group(1)) if m else None


def strip_time_phrases(text: str) -> str:
    return _clean(_TIME_PHRASES.sub(" ", text)) or ""


def calendar_window(text: str, now: datetime) -> tuple[datetime, datetime, str]:
    """Read window and a label for the reply ("today", "this week", ...)."""
    s = text.lower()
    if "next week" in s:
        monday = now.date() + timedelta(days=7 - now.weekday())
        start, _ = day_bounds(datetime.combine(monday, now.timetz()))
        return start, start + timedelta(days=7), "next week"
    if any(w in s for w in ("this week", "my week", "coming week", "next 7 days", "next seven days", "upcoming")):
        return now, now + timedelta(days=7), "in the next 7 days"

    day = extract_day(s, now)
    if day is not None and day.date() != now.date():
        start, end = day_bounds(day)
        label = "tomorrow" if day.date() == now.date() + timedelta(days=1) else f"on {day:%A}"
        return start, end, label

    _, end = day_bounds(now)
    return now, end, "today"


def reminder_entities(text: str, now: datetime) -> dict[str, Any]:
    """Reminder text and due time from a "remind me to X at Y" message."""
    m = _REMINDER_BODY.search(text)
    body = m.group(1) if m else text
    due = find_natural_time(body, now) if body.strip() else None
    stripped = strip_time_phrases(body)
    # "remind me at 5 to ..." leaves "to ..." after the time is removed
    stripped = _REMINDER_LEAD.sub("", stripped)
    return {"text": _clean(stripped), "due": due}


def _calendar_target_entities(text: str, now: datetime, *, split_new_time: bool) -> dict[str, Any]:
    target, new_time = text, None
    if split_new_time:
        parts = re.split(r"\s+to\s+", text, flags=re.IGNORECASE)
        if len(parts) > 1:
            candidate = parts[-1]
            new_start = find_natural_time(candidate, now)
            if new_start is not None:
                target, new_time = " to ".join(parts[:-1]), new_start

    reference = _EVENT_REFERENCE.search(target)
    entities: dict[str, Any] = {
        "event_title": _clean(reference.group(1)) if reference else None,
        "person": extract_person(target),
        "date": extract_day(target, now),
    }
    if split_new_time:
        entities["new_start"] = new_time
        entities["duration_minutes"] = extract_duration(text)
    return entities


def _drive_query(text: str) -> str | None:
    for pattern in _DRIVE_QUERY_PATTERNS:
        m = pattern.search(text)
        if m:
            return _clean(m.group(1))
    return None


def _days_back(text: str) -> int | None:
    s = text.lower()
    m = _DAYS_BACK.search(s)
    if m:
        return int(m.group(1))
    if "today" in s:
        return 1
    if "yesterday" in s:
        return 2
    if "week" in s:
        return 7
    if "month" in s:
        return 30
    return None


def action_from_route(decision: RouteDecision, text: str, now: datetime) -> Action:
    """Build the Action for an explicit route. ``cancel_action`` and ``none`` have no action."""
    if decision.type not in ROUTE_ACTIONS:
        raise ValueError(f"Route {decision.type} does not map to an action")
    action_type = ROUTE_ACTIONS[decision.type]
    entities: dict[str, Any] = {}

    if decision.type == RouteType.tasks:
        entities = {"show_all": decision.show_all, "show_rest": decision.show_rest}

    elif decision.type == RouteType.calendar_read:
        time_min, time_max, label = calendar_window(text, now)
        entities = {"time_min": time_min, "time_max": time_max, "label": label}

    elif decision.type == RouteType.calendar_create:
        title = None
        for pattern in _TITLE_PATTERNS:
            m = pattern.search(text)
            if m:
                title = _clean(m.group(1))
                break
        entities = {
            "title": title,
            "start": find_natural_time(text, now),
            "duration_minutes": extract_duration(text),
            "person": extract_person(text),
        }

    elif decision.type == RouteType.calendar_update:
        entities = _calendar_target_entities(text, now, split_new_time=True)

    elif decision.type == RouteType.calendar_delete:
        entities = _calendar_target_entities(text, now, split_new_time=False)

    elif decision.type == RouteType.gmail_search:
        entities = {"sender_name": extract_gmail_search_sender(text), "days_back": _days_back(text)}

    elif decision.type == RouteType.reminder_create:
        entities = reminder_entities(text, now)

    elif decision.type == RouteType.reminder_snooze:
        entities = {"duration_minutes": parse_duration(text)}

    elif decision.type == RouteType.contact_lookup:
        entities = {"name": extract_contact_name(text)}

    elif decision.type == RouteType.drive_search:
        entities = {"query": _drive_query(text)}

    elif decision.type == RouteType.document_qna:
        entities = {"query": extract_document_question(text) or text.strip()}

    elif decision.type == RouteType.document_recall:
        entities = {"document_name": extract_document_name(text)}

    elif decision.type == RouteType.web_search:
        entities = {"query": extract_web_search_query(text) or text.strip()}

    return Action(action_type, {k: v for k, v in entities.items() if v is not None})


def action_from_agent(tool: str, arguments: dict[str, Any], text: str, now: datetime) -> Action:
    """Normalize a tool call proposed by the reasoning backend.

    Unknown tools raise ValueError. Time arguments may be ISO strings or
    phrases; they are resolved here so skills always get datetimes.
    """
    action_type = ActionType(tool)
    entities = {k: v for k, v in (arguments or {}).items() if v not in (None, "")}

    for key in ("start", "new_start", "due", "date"):
        if isinstance(entities.get(key), str):
            parsed = find_natural_time(entities[key], now)
            if parsed is not None:
                entities[key] = parsed

    if action_type in (ActionType.tasks_complete, ActionType.tasks_delete) and "task_index" not in entities:
        index = extract_task_index(text)
        if index is not None and "title" not in entities:
            entities["task_index"] = index

    if action_type == ActionType.reminder_create and not entities.get("due"):
        fallback = reminder_entities(text, now)
        entities.setdefault("text", fallback["text"])
        if fallback["due"] is not None:
            entities["due"] = fallback["due"]

    return Action(action_type, entities)
