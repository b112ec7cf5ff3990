"""Title and person matching for task and calendar targeting.

Substring matching with bidirectional containment, case-insensitive.
Kept behind these functions so dispatch code never compares titles itself.
"""

import re
from typing import Any

GENERIC_EVENT_TERMS: frozenset[str] = frozenset({"meeting", "call", "appointment", "event", "sync"})

_FILLER_WORDS = {"the", "a", "an", "my", "our", "that", "this"}


def normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", title.lower()).strip(" \t.!?\"'")


def title_matches(query: str, title: str) -> bool:
    """True when either string contains the other."""
    q, t = normalize_title(query), normalize_title(title)
    if not q or not t:
        return False
    return q in t or t in q


def is_generic_title(title: str | None) -> bool:
    """True for titles that only name the kind of event ("the meeting", "sync calls")."""
    if not title:
        return True
    words = [w for w in normalize_title(title).split() if w not in _FILLER_WORDS]
    return all(_is_generic_word(w) for w in words)


def _is_generic_word(word: str) -> bool:
    return word in GENERIC_EVENT_TERMS or (word.endswith("s") and word[:-1] in GENERIC_EVENT_TERMS)


def person_matches(person: str, event: dict[str, Any]) -> bool:
    """Person name in the event title, or in any attendee email / display name."""
    needle = person.lower().strip()
    if not needle:
        return False
    if needle in str(event.get("title", "")).lower():
        return True
    for attendee in event.get("attendees") or []:
        if isinstance(attendee, str):
            if needle in attendee.lower():
                return True
            continue
        email = str(attendee.get("email", "")).lower()
        name = str(attendee.get("display_name") or attendee.get("displayName") or "").lower()
        if needle in email or needle in name:
            return True
    return False


def filter_event_candidates(
    events: list[dict[str, Any]],
    title: str | None = None,
    person: str | None = None,
) -> list[dict[str, Any]]:
    """Narrow a window of events to the ones the user is talking about.

    Filters by person when given, then by title only when the title is
    specific; a generic title ("meeting", "call") never filters.
    """
    candidates = events
    if person:
        candidates = [e for e in candidates if person_matches(person, e)]
    if title and not is_generic_title(title):
        candidates = [e for e in candidates if title_matches(title, str(e.get("title", "")))]
    return candidates


def filter_tasks_by_title(tasks: list[dict[str, Any]], query: str) -> list[dict[str, Any]]:
    return [t for t in tasks if title_matches(query, str(t.get("title", "")))]
