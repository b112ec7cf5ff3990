"""Tests for session state, deltas and stores."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError

from src.core.session import (
    CandidateMatch,
    ConfirmationPending,
    InMemorySessionStore,
    LastDocument,
    PendingDisambiguation,
    RedisSessionStore,
    SessionState,
    clear_pending,
    is_fresh,
    merge_updates,
    set_confirmation,
    set_disambiguation,
)
from tests.conftest import NOW


def _confirmation() -> ConfirmationPending:
    return ConfirmationPending(action="calendar_delete", params={"event_id": "e1"}, summary="Delete?", asked_at=NOW)


def _disambiguation() -> PendingDisambiguation:
    return PendingDisambiguation(
        action="tasks_complete",
        matches=[CandidateMatch(item={"id": "t1", "title": "Call bank"}, display_index=1)],
        timestamp=NOW,
    )


# ---------------------------------------------------------------------------
# SessionState
# ---------------------------------------------------------------------------


def test_confirmation_and_disambiguation_are_exclusive():
    with pytest.raises(ValidationError):
        SessionState(user_id="u", confirmation_pending=_confirmation(), pending_disambiguation=_disambiguation())


def test_apply_leaves_absent_keys_untouched(state):
    with_doc = state.apply(
        {"last_doc": LastDocument(id="d1", title="Lease.pdf", uploaded_at=NOW), "last_doc_summary": "A lease."}
    )
    updated = with_doc.apply({"confirmation_pending": _confirmation()})

    assert updated.last_doc.title == "Lease.pdf"
    assert updated.last_doc_summary == "A lease."
    assert updated.confirmation_pending.action == "calendar_delete"


def test_apply_none_clears(state):
    pending = state.apply({"confirmation_pending": _confirmation()})
    assert pending.apply({"confirmation_pending": None}).confirmation_pending is None


def test_apply_rejects_unknown_fields(state):
    with pytest.raises(ValueError):
        state.apply({"mood": "great"})


def test_apply_does_not_mutate_original(state):
    state.apply({"confirmation_pending": _confirmation()})
    assert state.confirmation_pending is None


def test_set_confirmation_clears_disambiguation(state):
    with_round = state.apply(set_disambiguation(_disambiguation()))
    switched = with_round.apply(set_confirmation(_confirmation()))

    assert switched.pending_disambiguation is None
    assert switched.confirmation_pending is not None


def test_set_disambiguation_clears_confirmation(state):
    with_confirm = state.apply(set_confirmation(_confirmation()))
    switched = with_confirm.apply(set_disambiguation(_disambiguation()))

    assert switched.confirmation_pending is None
    assert switched.pending_disambiguation is not None


def test_clear_pending_keeps_document(state):
    loaded = state.apply(
        {
            "last_doc": LastDocument(id="d1", title="Lease.pdf", uploaded_at=NOW),
            "confirmation_pending": _confirmation(),
            "contacts_search_results": [{"name": "Priya"}],
        }
    )
    cleared = loaded.apply(clear_pending())

    assert cleared.confirmation_pending is None
    assert cleared.contacts_search_results is None
    assert cleared.last_doc is not None


def test_merge_updates_later_wins():
    merged = merge_updates({"last_doc_summary": "a"}, {"last_doc_summary": "b"})
    assert merged == {"last_doc_summary": "b"}


def test_merge_updates_rejects_both_pending():
    with pytest.raises(ValueError):
        merge_updates({"confirmation_pending": _confirmation()}, {"pending_disambiguation": _disambiguation()})


def test_is_fresh():
    assert is_fresh(NOW, NOW + timedelta(seconds=299))
    assert is_fresh(NOW, NOW + timedelta(seconds=300))
    assert not is_fresh(NOW, NOW + timedelta(seconds=301))
    assert not is_fresh(None, NOW)
    assert is_fresh(NOW, NOW + timedelta(minutes=20), max_age_seconds=3600)


# ---------------------------------------------------------------------------
# InMemorySessionStore
# ---------------------------------------------------------------------------


async def test_in_memory_store_partial_upsert():
    store = InMemorySessionStore()
    await store.upsert("u1", {"last_doc": LastDocument(id="d1", title="Lease.pdf", uploaded_at=NOW)})
    await store.upsert("u1", {"confirmation_pending": _confirmation()})

    state = await store.get("u1")
    assert state.last_doc.id == "d1"
    assert state.confirmation_pending.params == {"event_id": "e1"}
    assert state.updated_at is not None


async def test_in_memory_store_unknown_user_is_empty():
    state = await InMemorySessionStore().get("nobody")
    assert state.user_id == "nobody"
    assert state.confirmation_pending is None


async def test_in_memory_store_rejects_unknown_fields():
    with pytest.raises(ValueError):
        await InMemorySessionStore().upsert("u1", {"bogus": 1})


# ---------------------------------------------------------------------------
# RedisSessionStore
# ---------------------------------------------------------------------------


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.hgetall = AsyncMock(return_value={})
    client.hset = AsyncMock()
    client.expire = AsyncMock()
    return client


async def test_redis_store_writes_only_delta_fields(redis_client):
    store = RedisSessionStore(client=redis_client, ttl_seconds=600)
    await store.upsert("u1", {"confirmation_pending": _confirmation()})

    key = redis_client.hset.await_args.args[0]
    mapping = redis_client.hset.await_args.kwargs["mapping"]
    assert key == "session:u1"
    assert set(mapping) == {"confirmation_pending", "updated_at"}
    assert json.loads(mapping["confirmation_pending"])["action"] == "calendar_delete"
    redis_client.expire.assert_awaited_once_with("session:u1", 600)


async def test_redis_store_none_is_written_as_null(redis_client):
    store = RedisSessionStore(client=redis_client)
    await store.upsert("u1", {"pending_slots": None})
    assert redis_client.hset.await_args.kwargs["mapping"]["pending_slots"] == "null"


async def test_redis_store_empty_delta_is_noop(redis_client):
    await RedisSessionStore(client=redis_client).upsert("u1", {})
    redis_client.hset.assert_not_awaited()


async def test_redis_store_reads_state(redis_client):
    redis_client.hgetall.return_value = {
        "last_doc_summary": json.dumps("A lease."),
        "confirmation_pending": _confirmation().model_dump_json(),
        "legacy_field": json.dumps("ignored"),
    }
    state = await RedisSessionStore(client=redis_client).get("u1")

    assert state.last_doc_summary == "A lease."
    assert state.confirmation_pending.summary == "Delete?"


async def test_redis_store_resets_corrupt_pending_state(redis_client):
    redis_client.hgetall.return_value = {
        "confirmation_pending": _confirmation().model_dump_json(),
        "pending_disambiguation": _disambiguation().model_dump_json(),
        "last_doc_summary": json.dumps("kept"),
    }
    state = await RedisSessionStore(client=redis_client).get("u1")

    assert state.confirmation_pending is None
    assert state.pending_disambiguation is None
    assert state.last_doc_summary == "kept"
