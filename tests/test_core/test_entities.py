"""Tests for deterministic entity extraction."""

from datetime import datetime, timedelta

import pytest

from src.core.entities import (
    action_from_agent,
    action_from_route,
    calendar_window,
    extract_person,
    extract_task_index,
    reminder_entities,
    strip_time_phrases,
)
from src.core.phrase_router import route
from src.core.schemas.action import ActionType
from src.core.schemas.route import RouteDecision, RouteType
from tests.conftest import NOW, TZ


def _at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 11, day, hour, minute, tzinfo=TZ)


def _action(route_type: RouteType, text: str, **flags):
    return action_from_route(RouteDecision(route_type, **flags), text, NOW)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "text,expected",
    [
        ("meeting with Rohan tomorrow at 3pm", "Rohan"),
        ("lunch with priya sharma on friday", "Priya Sharma"),
        ("sync with Rohan, Priya", "Rohan"),
        ("call with 3 people", None),
        ("block two hours", None),
    ],
)
def test_extract_person(text, expected):
    assert extract_person(text) == expected


def test_extract_task_index():
    assert extract_task_index("mark task 3 as done") == 3
    assert extract_task_index("complete task #4") == 4
    assert extract_task_index("complete the bank task") is None


def test_strip_time_phrases():
    assert strip_time_phrases("call mom tomorrow at 5pm") == "call mom"
    assert strip_time_phrases("submit report in 2 hours") == "submit report"


def test_reminder_entities():
    entities = reminder_entities("remind me to call mom at 5pm", NOW)
    assert entities == {"text": "call mom", "due": _at(3, 17)}


def test_reminder_entities_time_first():
    entities = reminder_entities("remind me tomorrow morning to renew the passport", NOW)
    assert entities["text"] == "renew the passport"
    assert entities["due"] == _at(4, 9)


def test_reminder_entities_without_time():
    entities = reminder_entities("remind me to water the plants", NOW)
    assert entities == {"text": "water the plants", "due": None}


# ---------------------------------------------------------------------------
# calendar_window
# ---------------------------------------------------------------------------


def test_calendar_window_today_starts_now():
    assert calendar_window("what's on my calendar", NOW) == (NOW, _at(4, 0), "today")


def test_calendar_window_tomorrow():
    assert calendar_window("what's on my calendar tomorrow", NOW) == (_at(4, 0), _at(5, 0), "tomorrow")


def test_calendar_window_weekday():
    assert calendar_window("meetings on friday", NOW) == (_at(7, 0), _at(8, 0), "on Friday")


def test_calendar_window_rolling_week():
    assert calendar_window("meetings this week", NOW) == (NOW, NOW + timedelta(days=7), "in the next 7 days")


def test_calendar_window_next_week_starts_monday():
    start, end, label = calendar_window("what's on next week", NOW)
    assert start == _at(10, 0)
    assert end == _at(17, 0)
    assert label == "next week"


# ---------------------------------------------------------------------------
# action_from_route
# ---------------------------------------------------------------------------


def test_tasks_flags():
    action = action_from_route(route("show all tasks"), "show all tasks", NOW)
    assert action.type == ActionType.tasks_read
    assert action.entities == {"show_all": True, "show_rest": False}


def test_calendar_create():
    action = _action(RouteType.calendar_create, "schedule a meeting with Rohan tomorrow at 3pm")
    assert action.type == ActionType.calendar_create
    assert action.entities == {"start": _at(4, 15), "person": "Rohan"}


def test_calendar_create_with_title_and_duration():
    action = _action(
        RouteType.calendar_create,
        "schedule a call called Roadmap review on friday at 4pm for 90 minutes",
    )
    assert action.entities["title"] == "Roadmap review"
    assert action.entities["start"] == _at(7, 16)
    assert action.entities["duration_minutes"] == 90


def test_calendar_create_without_time_has_no_start():
    action = _action(RouteType.calendar_create, "add a dentist appointment to my calendar")
    assert "start" not in action.entities


def test_calendar_update_splits_new_time():
    action = _action(RouteType.calendar_update, "reschedule my meeting with Priya to 4pm")
    assert action.type == ActionType.calendar_update
    assert action.entities == {"event_title": "meeting", "person": "Priya", "new_start": _at(3, 16)}


def test_calendar_delete_target():
    action = _action(RouteType.calendar_delete, "cancel the budget review tomorrow")
    assert action.entities == {"event_title": "budget review", "date": _at(4, 9)}


def test_calendar_read_window():
    action = _action(RouteType.calendar_read, "what's on my calendar tomorrow")
    assert action.entities == {"time_min": _at(4, 0), "time_max": _at(5, 0), "label": "tomorrow"}


def test_gmail_search_entities():
    action = _action(RouteType.gmail_search, "show me emails from rohan@acme.com last week")
    assert action.entities == {"sender_name": "rohan@acme.com", "days_back": 7}


def test_gmail_search_without_window():
    action = _action(RouteType.gmail_search, "find emails from Priya Sharma")
    assert action.entities == {"sender_name": "Priya Sharma"}


def test_reminder_create():
    action = _action(RouteType.reminder_create, "remind me to call mom at 5pm")
    assert action.type == ActionType.reminder_create
    assert action.entities == {"text": "call mom", "due": _at(3, 17)}


def test_snooze_duration():
    assert _action(RouteType.reminder_snooze, "snooze for 10 minutes").entities == {"duration_minutes": 10}
    assert _action(RouteType.reminder_snooze, "remind me later").entities == {}


def test_contact_drive_document_web():
    assert _action(RouteType.contact_lookup, "what's Priya's email?").entities == {"name": "Priya"}
    assert _action(RouteType.drive_search, "search my drive for the budget sheet").entities == {
        "query": "the budget sheet"
    }
    assert _action(RouteType.drive_search, "find the NDA in my drive").entities == {"query": "the NDA"}
    assert _action(RouteType.document_qna, "what does it say about pricing?").entities == {"query": "pricing"}
    assert _action(RouteType.web_search, "search the web for best biryani in Pune").entities == {
        "query": "best biryani in Pune"
    }


@pytest.mark.parametrize("route_type", [RouteType.cancel_action, RouteType.none])
def test_routes_without_actions_raise(route_type):
    with pytest.raises(ValueError):
        _action(route_type, "cancel")


# ---------------------------------------------------------------------------
# action_from_agent
# ---------------------------------------------------------------------------


def test_agent_times_are_resolved():
    action = action_from_agent(
        "calendar_create",
        {"title": "Dentist", "start": "friday 5pm", "attendees": None},
        "book the dentist friday 5pm",
        NOW,
    )
    assert action.type == ActionType.calendar_create
    assert action.entities == {"title": "Dentist", "start": _at(7, 17)}


def test_agent_iso_time():
    action = action_from_agent("reminder_create", {"text": "pay rent", "due": "2025-11-07T17:00:00+05:30"}, "", NOW)
    assert action.entities["due"] == _at(7, 17)


def test_agent_unparseable_time_stays_a_string():
    action = action_from_agent("calendar_create", {"title": "Offsite", "start": "whenever"}, "", NOW)
    assert action.entities["start"] == "whenever"


def test_agent_task_index_from_text():
    action = action_from_agent("tasks_complete", {}, "mark task 3 as done", NOW)
    assert action.entities == {"task_index": 3}


def test_agent_title_wins_over_index():
    action = action_from_agent("tasks_complete", {"title": "call bank"}, "complete task 3", NOW)
    assert action.entities == {"title": "call bank"}


def test_agent_reminder_falls_back_to_message():
    action = action_from_agent("reminder_create", {}, "remind me to pay rent tomorrow", NOW)
    assert action.entities == {"text": "pay rent", "due": _at(4, 9)}


def test_agent_unknown_tool():
    with pytest.raises(ValueError):
        action_from_agent("launch_rockets", {}, "", NOW)
