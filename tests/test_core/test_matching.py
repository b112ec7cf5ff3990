"""Tests for title and person matching."""

import pytest

from src.core.matching import (
    filter_event_candidates,
    filter_tasks_by_title,
    is_generic_title,
    person_matches,
    title_matches,
)

EVENTS = [
    {"id": "e1", "title": "Weekly Sync with Priya", "attendees": [{"email": "priya@acme.com"}]},
    {"id": "e2", "title": "Priya 1:1", "attendees": []},
    {"id": "e3", "title": "Budget review", "attendees": [{"email": "rohan@acme.com", "display_name": "Rohan"}]},
    {"id": "e4", "title": "Vendor call", "attendees": ["priya.s@vendor.io"]},
]


def _ids(events):
    return [e["id"] for e in events]


def test_title_matches_both_directions():
    assert title_matches("budget", "Budget review")
    assert title_matches("the budget review meeting", "budget review")
    assert not title_matches("roadmap", "Budget review")
    assert not title_matches("", "Budget review")


@pytest.mark.parametrize(
    "title", [None, "", "meeting", "the meeting", "my call", "calls", "Sync", "sync meeting", "the sync calls"]
)
def test_generic_titles(title):
    assert is_generic_title(title)


@pytest.mark.parametrize("title", ["budget review", "dentist", "vendor call"])
def test_specific_titles(title):
    assert not is_generic_title(title)


def test_person_matches_title_and_attendees():
    assert person_matches("priya", EVENTS[0])
    assert person_matches("Priya", EVENTS[1])
    assert person_matches("rohan", EVENTS[2])
    assert person_matches("priya", EVENTS[3])
    assert not person_matches("anita", EVENTS[2])
    assert not person_matches("  ", EVENTS[0])


def test_generic_title_does_not_filter_out_person_matches():
    """'the meeting with Priya' keeps every event involving Priya."""
    candidates = filter_event_candidates(EVENTS, title="meeting", person="Priya")
    assert _ids(candidates) == ["e1", "e2", "e4"]


def test_specific_title_narrows():
    assert _ids(filter_event_candidates(EVENTS, title="budget review")) == ["e3"]
    assert _ids(filter_event_candidates(EVENTS, title="1:1", person="priya")) == ["e2"]


def test_no_filters_returns_everything():
    assert _ids(filter_event_candidates(EVENTS)) == ["e1", "e2", "e3", "e4"]


def test_filter_tasks_by_title():
    tasks = [{"title": "Call bank"}, {"title": "Call bank manager"}, {"title": "Pay rent"}]
    assert len(filter_tasks_by_title(tasks, "call bank")) == 2
    assert filter_tasks_by_title(tasks, "rent") == [{"title": "Pay rent"}]
