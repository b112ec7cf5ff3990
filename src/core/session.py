"""Per-user session state.

One live ``SessionState`` per user. The router reads a snapshot at the start
of a turn and returns a delta (``StateUpdates``) at the end; the store
applies the delta with partial-upsert semantics: keys absent from the delta
are left untouched, keys present with ``None`` are cleared.

``pending_disambiguation`` and ``confirmation_pending`` are mutually
exclusive. Use ``set_confirmation`` / ``set_disambiguation`` to build
deltas so that setting one always clears the other.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Protocol

from pydantic import BaseModel, Field, model_validator
from pydantic_core import to_jsonable_python

from src.core.config import settings

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "session"

StateUpdates = dict[str, Any]


class LastDocument(BaseModel):
    id: str
    title: str
    uploaded_at: datetime


class ConfirmationPending(BaseModel):
    """A red-flag action waiting for an explicit YES/NO."""

    action: str
    params: dict[str, Any] = Field(default_factory=dict)
    summary: str = ""
    asked_at: datetime


class PendingSlots(BaseModel):
    """An action whose parameters are still being collected."""

    action: str
    collected: dict[str, Any] = Field(default_factory=dict)
    missing: list[str] = Field(default_factory=list)
    asked_at: datetime


class CandidateMatch(BaseModel):
    item: dict[str, Any]
    source_list: str | None = None
    display_index: int = Field(ge=1)

    @property
    def title(self) -> str:
        return str(self.item.get("title") or self.item.get("name") or "")


class PendingDisambiguation(BaseModel):
    """One disambiguation round. Indices are 1-based and only valid in this round."""

    action: str
    matches: list[CandidateMatch]
    timestamp: datetime
    allow_all: bool = False
    context: dict[str, Any] = Field(default_factory=dict)


class TaskSnapshotItem(BaseModel):
    index: int
    id: str
    title: str
    list_id: str
    list_name: str | None = None
    due: str | None = None
    notes: str | None = None


class TasksSnapshot(BaseModel):
    items: list[TaskSnapshotItem] = Field(default_factory=list)
    timestamp: datetime

    def by_index(self, index: int) -> TaskSnapshotItem | None:
        for item in self.items:
            if item.index == index:
                return item
        return None


class TasksPaging(BaseModel):
    last_end_index: int
    total: int


class SessionState(BaseModel):
    user_id: str
    confirmation_pending: ConfirmationPending | None = None
    pending_slots: PendingSlots | None = None
    pending_disambiguation: PendingDisambiguation | None = None
    last_doc: LastDocument | None = None
    last_doc_summary: str | None = None
    tasks_snapshot: TasksSnapshot | None = None
    tasks_paging: TasksPaging | None = None
    contacts_search_results: list[dict[str, Any]] | None = None
    contacts_search_timestamp: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "SessionState":
        if self.confirmation_pending is not None and self.pending_disambiguation is not None:
            raise ValueError("confirmation_pending and pending_disambiguation are mutually exclusive")
        return self

    def apply(self, updates: StateUpdates) -> "SessionState":
        """Return a new state with the delta applied."""
        unknown = set(updates) - STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")
        merged = self.model_dump()
        merged.update(to_jsonable_python(updates))
        return SessionState.model_validate(merged)


STATE_FIELDS = frozenset(SessionState.model_fields) - {"user_id"}


# ---------------------------------------------------------------------------
# Delta helpers
# ---------------------------------------------------------------------------


def set_confirmation(pending: ConfirmationPending) -> StateUpdates:
    return {"confirmation_pending": pending, "pending_disambiguation": None}


def set_disambiguation(pending: PendingDisambiguation) -> StateUpdates:
    return {"pending_disambiguation": pending, "confirmation_pending": None}


def clear_pending() -> StateUpdates:
    """Delta that drops all multi-turn state in one upsert."""
    return {
        "confirmation_pending": None,
        "pending_slots": None,
        "pending_disambiguation": None,
        "contacts_search_results": None,
        "contacts_search_timestamp": None,
    }


def is_fresh(timestamp: datetime | None, now: datetime, max_age_seconds: int | None = None) -> bool:
    if timestamp is None:
        return False
    max_age = timedelta(seconds=max_age_seconds or settings.pending_state_ttl_seconds)
    return now - timestamp <= max_age


def merge_updates(*deltas: StateUpdates) -> StateUpdates:
    """Combine deltas left to right, later keys win."""
    merged: StateUpdates = {}
    for delta in deltas:
        merged.update(delta)
    if merged.get("confirmation_pending") is not None and merged.get("pending_disambiguation") is not None:
        raise ValueError("confirmation_pending and pending_disambiguation are mutually exclusive")
    return merged


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


class SessionStore(Protocol):
    async def get(self, user_id: str) -> SessionState: ...

    async def upsert(self, user_id: str, updates: StateUpdates) -> None: ...


def _encode(value: Any) -> str:
    return json.dumps(to_jsonable_python(value), ensure_ascii=False, default=str)


class RedisSessionStore:
    """Session state as a Redis hash, one JSON-encoded field per state field.

    ``HSET`` of only the delta's fields gives partial-upsert semantics
    without a read-modify-write cycle.
    """

    def __init__(self, client=None, ttl_seconds: int | None = None):
        if client is None:
            from src.core.db import redis as client
        self._redis = client
        self._ttl = ttl_seconds or settings.session_ttl_seconds

    def _key(self, user_id: str) -> str:
        return f"{REDIS_KEY_PREFIX}:{user_id}"

    async def get(self, user_id: str) -> SessionState:
        raw = await self._redis.hgetall(self._key(user_id))
        fields: dict[str, Any] = {}
        for name, value in raw.items():
            if name not in STATE_FIELDS:
                continue
            fields[name] = json.loads(value)
        try:
            return SessionState(user_id=user_id, **fields)
        except ValueError:
            logger.warning("Corrupt session state for user %s, resetting pending fields", user_id)
            fields.update({k: None for k in clear_pending()})
            return SessionState(user_id=user_id, **fields)

    async def upsert(self, user_id: str, updates: StateUpdates) -> None:
        unknown = set(updates) - STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")
        if not updates:
            return
        key = self._key(user_id)
        mapping = {name: _encode(value) for name, value in updates.items()}
        mapping["updated_at"] = _encode(datetime.now().astimezone())
        await self._redis.hset(key, mapping=mapping)
        await self._redis.expire(key, self._ttl)


class InMemorySessionStore:
    """Process-local store for tests and local runs."""

    def __init__(self):
        self._rows: dict[str, dict[str, Any]] = {}

    async def get(self, user_id: str) -> SessionState:
        row = self._rows.get(user_id, {})
        return SessionState(user_id=user_id, **row)

    async def upsert(self, user_id: str, updates: StateUpdates) -> None:
        unknown = set(updates) - STATE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {sorted(unknown)}")
        row = self._rows.setdefault(user_id, {})
        row.update(to_jsonable_python(updates))
        row["updated_at"] = datetime.now().astimezone().isoformat()
