"""Tests for the single-call skills: contacts, drive, web search, briefing, greeting."""

from datetime import timedelta

from src.core.schemas.action import Action, ActionType
from src.core.session import ConfirmationPending, PendingSlots
from src.skills.briefing.handler import skill as briefing
from src.skills.contacts.handler import skill as contacts
from src.skills.drive.handler import skill as drive
from src.skills.greeting.handler import INTRODUCTION, skill as greeting
from src.skills.slots import SLOT_QUESTIONS
from src.skills.web_search.handler import skill as web_search
from tests.conftest import NOW

# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


async def test_contact_lookup(ctx, capabilities):
    capabilities.get("contacts").respond(
        "lookup", data=[{"name": "Priya Sharma", "email": "priya@acme.com", "phone": "+91 98000 00002"}]
    )

    result = await contacts.execute(Action(ActionType.contact_lookup, {"name": "Priya"}), ctx, capabilities)

    assert result.response_text == "👤 Priya Sharma\n   📧 priya@acme.com\n   📞 +91 98000 00002"
    assert result.state_updates["contacts_search_timestamp"] == NOW
    assert len(result.state_updates["contacts_search_results"]) == 1


async def test_contact_not_found(ctx, capabilities):
    result = await contacts.execute(Action(ActionType.contact_lookup, {"name": "Zed"}), ctx, capabilities)

    assert result.response_text == "👤 I couldn't find anyone with that name in your contacts."
    assert result.state_updates == {}


async def test_contact_without_name_asks(ctx, capabilities):
    result = await contacts.execute(Action(ActionType.contact_lookup), ctx, capabilities)
    assert result.response_text == SLOT_QUESTIONS["name"]


# ---------------------------------------------------------------------------
# Drive and web search
# ---------------------------------------------------------------------------


async def test_drive_search_lists_files(ctx, capabilities):
    capabilities.get("drive").respond(
        "search",
        data=[
            {"name": "Budget 2026.xlsx", "url": "https://drive.example/b"},
            {"title": "Budget notes"},
        ],
    )

    result = await drive.execute(Action(ActionType.drive_search, {"query": "budget"}), ctx, capabilities)

    assert result.response_text == (
        "📁 Found 2 files:\n\n• Budget 2026.xlsx\n  https://drive.example/b\n• Budget notes"
    )


async def test_drive_search_nothing(ctx, capabilities):
    result = await drive.execute(Action(ActionType.drive_search, {"query": "nda"}), ctx, capabilities)
    assert result.response_text == "📁 I couldn't find any files matching your search in Google Drive."


async def test_web_search(ctx, capabilities):
    capabilities.get("web_search").respond("search", "🔎 Top result: Paradise Biryani")

    result = await web_search.execute(
        Action(ActionType.web_search, {"query": "best biryani in Pune"}), ctx, capabilities
    )

    assert result.response_text == "🔎 Top result: Paradise Biryani"
    assert capabilities.get("web_search").calls_to("search") == [{"query": "best biryani in Pune"}]


async def test_web_search_without_query(ctx, capabilities):
    result = await web_search.execute(Action(ActionType.web_search, {"query": "  "}), ctx, capabilities)
    assert result.response_text == SLOT_QUESTIONS["query"]


# ---------------------------------------------------------------------------
# Briefing
# ---------------------------------------------------------------------------


async def test_briefing_for_local_day(ctx, capabilities):
    capabilities.get("briefing").respond("generate", "☀️ Good morning! 3 meetings today.")

    result = await briefing.execute(Action(ActionType.daily_briefing), ctx, capabilities)

    assert result.response_text == "☀️ Good morning! 3 meetings today."
    assert capabilities.get("briefing").calls_to("generate") == [{"date": "2025-11-03", "manual": True}]


async def test_briefing_empty(ctx, capabilities):
    result = await briefing.execute(Action(ActionType.daily_briefing), ctx, capabilities)
    assert result.response_text == "📋 No briefing data available right now."


# ---------------------------------------------------------------------------
# Greeting
# ---------------------------------------------------------------------------


async def test_greeting_uses_name(make_ctx, capabilities):
    result = await greeting.execute(Action(ActionType.greeting), make_ctx(user_name="Asha"), capabilities)

    assert result.response_text == f"Hi Asha! {INTRODUCTION}"
    assert result.state_updates == {}


async def test_greeting_clears_stale_pending_state(make_ctx, state, capabilities):
    old = NOW - timedelta(minutes=10)
    stale = state.apply(
        {
            "confirmation_pending": ConfirmationPending(
                action="email_send", params={"draft_id": "d-1"}, summary="Send it?", asked_at=old
            ),
            "contacts_search_results": [{"name": "Rohan"}],
            "contacts_search_timestamp": old,
        }
    )

    result = await greeting.execute(Action(ActionType.greeting), make_ctx(stale), capabilities)

    assert result.response_text == INTRODUCTION
    assert result.state_updates == {
        "confirmation_pending": None,
        "contacts_search_results": None,
        "contacts_search_timestamp": None,
    }


async def test_greeting_keeps_fresh_slots(make_ctx, state, capabilities):
    fresh = state.apply(
        {
            "pending_slots": PendingSlots(
                action="calendar_create", collected={}, missing=["start"], asked_at=NOW - timedelta(minutes=2)
            )
        }
    )

    result = await greeting.execute(Action(ActionType.greeting), make_ctx(fresh), capabilities)

    assert result.state_updates == {}
