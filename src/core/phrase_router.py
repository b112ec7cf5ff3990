"""Deterministic phrase router.

All phrase-based routing happens here, before any reasoning backend is
called. Functions in this module are pure: no I/O, no state.
"""

import re

from src.core.phrases import (
    CANCEL_EXACT,
    CANCEL_PREFIXES,
    CONTACT_PATTERNS,
    DOCUMENT_QNA_PATTERNS,
    DOCUMENT_RECALL_PATTERNS,
    ROUTE_TABLE,
    WEB_SEARCH_QUERY_PATTERNS,
)
from src.core.schemas.route import RouteDecision, RouteType

_CANCEL_PREFIX_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in CANCEL_PREFIXES) + r")(?:\W|$)"
)
_TRAILING_PUNCT = " \t\n?.!,;:"

_SENDER_PATTERNS = (
    re.compile(
        r"\b(?:e-?mails?|mails?|messages?|anything) (?:from|by|sent by) "
        r"([\w.@+'-]+(?: [\w.@+'-]+)*?)"
        r"(?=\s+(?:in|from|over|during|since|about|regarding|today|yesterday|this|last|past|sent|received)\b|\s*[?.!,]|$)",
        re.IGNORECASE,
    ),
    re.compile(r"\bfrom ([\w.+-]+@[\w-]+\.[\w.]+)", re.IGNORECASE),
    re.compile(r"\bfrom ([\w.'-]+(?: [\w.'-]+)?)\s*[?.!]*$", re.IGNORECASE),
)

_DOCUMENT_NAME_PATTERNS = DOCUMENT_RECALL_PATTERNS + (
    re.compile(r"\b(?:called|named|titled) [\"']?(.+?)[\"']?\s*[?.!]*$", re.IGNORECASE),
)

_ROUTE_DESCRIPTIONS: dict[RouteType, str] = {
    RouteType.daily_briefing: "Daily Briefing (manual trigger)",
    RouteType.calendar_read: "Calendar - Read Events",
    RouteType.calendar_create: "Calendar - Create Event",
    RouteType.calendar_update: "Calendar - Update/Reschedule",
    RouteType.calendar_delete: "Calendar - Delete/Cancel",
    RouteType.gmail_check: "Gmail - Check/Summarize",
    RouteType.gmail_search: "Gmail - Search",
    RouteType.gmail_mark_read: "Gmail - Mark Read",
    RouteType.reminder_create: "Reminder - Create",
    RouteType.reminder_snooze: "Reminder - Snooze",
    RouteType.contact_lookup: "Contact - Lookup",
    RouteType.drive_search: "Drive - Search",
    RouteType.document_qna: "Document - Q&A",
    RouteType.document_list: "Document - List Uploads",
    RouteType.document_recall: "Document - Recall Previous",
    RouteType.web_search: "Web Search",
    RouteType.cancel_action: "Cancel pending action",
    RouteType.none: "No explicit route - classifier will decide",
}

NO_ROUTE = RouteDecision(RouteType.none)
CANCEL_ROUTE = RouteDecision(RouteType.cancel_action)


def _normalize(message: str) -> str:
    msg = message.lower().strip()
    msg = msg.replace("’", "'").replace("‘", "'")
    return re.sub(r"\s+", " ", msg)


def is_cancel_phrase(message: str) -> bool:
    msg = _normalize(message).rstrip(_TRAILING_PUNCT)
    return msg in CANCEL_EXACT or bool(_CANCEL_PREFIX_RE.match(msg))


def route(message: str) -> RouteDecision:
    """Map raw message text to a coarse route.

    Cancel phrases are checked first so an abort always wins, then the
    groups of ``ROUTE_TABLE`` in order. Returns the ``none`` route when
    nothing matches.
    """
    if is_cancel_phrase(message):
        return CANCEL_ROUTE

    msg = _normalize(message)
    if not msg:
        return NO_ROUTE

    for group in ROUTE_TABLE:
        if group.matches(msg):
            return group.decision
    return NO_ROUTE


def describe_route(decision: RouteDecision) -> str:
    """Human-readable route description for logs."""
    if decision.type == RouteType.tasks:
        if decision.show_all:
            return "Tasks - Show ALL"
        if decision.show_rest:
            return "Tasks - Show REST/MORE"
        return "Tasks - Initial View (1-10)"
    return _ROUTE_DESCRIPTIONS[decision.type]


def _first_capture(patterns, message: str) -> str | None:
    for pattern in patterns:
        m = pattern.search(message)
        if m:
            value = m.group(1).strip().strip(_TRAILING_PUNCT).strip("\"'")
            if value:
                return value
    return None


def extract_gmail_search_sender(message: str) -> str | None:
    """Sender name or address in "emails from X" style requests."""
    return _first_capture(_SENDER_PATTERNS, message.strip())


def extract_contact_name(message: str) -> str | None:
    """Person name in "what's X's email" style requests."""
    name = _first_capture(CONTACT_PATTERNS, _normalize(message))
    if name is None:
        return None
    return name.title()


def extract_document_name(message: str) -> str | None:
    """Document name in "open the pdf called X" style requests."""
    return _first_capture(_DOCUMENT_NAME_PATTERNS, message.strip())


def extract_document_question(message: str) -> str | None:
    """Topic in "what does it say about X" style requests."""
    return _first_capture(DOCUMENT_QNA_PATTERNS, message.strip())


def extract_web_search_query(message: str) -> str | None:
    return _first_capture(WEB_SEARCH_QUERY_PATTERNS, message.strip())
