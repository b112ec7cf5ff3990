"""Message router: message -> route or intent -> action -> reply.

``process_message`` is the pure-ish core: a state snapshot goes in, a reply
and a state delta come out. ``handle_message`` is the transport entry
point that loads the snapshot, serializes turns per user and persists the
delta and the exchange.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from redis.exceptions import LockError, RedisError

from src.capabilities import create_http_capabilities
from src.capabilities.base import CapabilityRegistry
from src.core.agent import AgentOrchestrator
from src.core.config import settings
from src.core.context import SessionContext
from src.core.db import redis
from src.core.disambiguation import looks_like_choice, resolve_choice
from src.core.dispatcher import ActionDispatcher
from src.core.entities import action_from_route, reminder_entities
from src.core.error_messages import GENERIC_APOLOGY, LOST_CONTEXT, describe_capability_error
from src.core.exceptions import AmbiguousChoiceError, CapabilityError, StaleDisambiguationError
from src.core.intent import classify
from src.core.memory import sliding_window
from src.core.phrase_router import NO_ROUTE, describe_route, route
from src.core.schemas.action import Action, ActionType
from src.core.schemas.intent import IntentType
from src.core.schemas.route import RouteDecision, RouteType
from src.core.session import (
    RedisSessionStore,
    SessionState,
    SessionStore,
    StateUpdates,
    clear_pending,
    is_fresh,
    merge_updates,
)
from src.core.time_parser import local_now
from src.gateway.types import IncomingMessage, MessageType, OutgoingMessage
from src.skills import create_registry
from src.skills.base import SkillRegistry, SkillResult
from src.skills.documents.handler import ingest_document
from src.skills.slots import SlotAnswerError, fill_slot, next_question

logger = logging.getLogger(__name__)

CANCELLED = "❌ Cancelled. What would you like to do instead?"
NOTHING_TO_CANCEL = "There's nothing pending to cancel. How can I help?"
DECLINED = "👍 Okay, I won't go ahead with that."
BUSY = "⏳ Still working on your previous message, one moment please."
VOICE_NOT_TRANSCRIBED = "🎤 I couldn't get the text of that voice note. Could you type it instead?"
UNSUPPORTED = "I can read text messages, voice notes and documents. Please send one of those."

_CLEAR_DISAMBIGUATION: StateUpdates = {
    "pending_disambiguation": None,
    "contacts_search_results": None,
    "contacts_search_timestamp": None,
}


@dataclass
class ProcessResult:
    reply_text: str
    state_updates: StateUpdates = field(default_factory=dict)
    chosen_route: RouteDecision = NO_ROUTE


def _has_pending(state: SessionState) -> bool:
    return any(
        (
            state.confirmation_pending,
            state.pending_slots,
            state.pending_disambiguation,
            state.contacts_search_results,
        )
    )


class MessageProcessor:
    """Runs one turn. Holds no per-user state; every call gets its own snapshot."""

    def __init__(
        self,
        registry: SkillRegistry,
        capabilities: CapabilityRegistry,
        classifier=classify,
        orchestrator: AgentOrchestrator | None = None,
    ):
        self.capabilities = capabilities
        self.dispatcher = ActionDispatcher(registry, capabilities)
        self.classify = classifier
        self.orchestrator = orchestrator or AgentOrchestrator(self.dispatcher)

    async def process(
        self,
        user_id: str,
        text: str,
        state: SessionState,
        history: list[dict[str, Any]] | None = None,
        now: datetime | None = None,
        user_name: str | None = None,
    ) -> ProcessResult:
        context = SessionContext(
            user_id=user_id,
            state=state,
            now=now or local_now(),
            timezone=settings.default_timezone,
            history=history or [],
            user_name=user_name,
            message_text=text,
        )
        decision = NO_ROUTE
        try:
            decision = route(text)
            logger.info("Route for user %s: %s", user_id, describe_route(decision))
            return await self._process(text, decision, context)
        except Exception:
            logger.exception("Unhandled error processing message for user %s", user_id)
            return ProcessResult(GENERIC_APOLOGY, {}, decision)

    async def _run(
        self,
        action: Action,
        context: SessionContext,
        decision: RouteDecision,
        updates: StateUpdates,
    ) -> ProcessResult:
        """Dispatch against the state with ``updates`` applied; return the combined delta."""
        scoped = context.with_state(context.state.apply(updates)) if updates else context
        result = await self.dispatcher.dispatch(action, scoped)
        return ProcessResult(result.response_text, merge_updates(updates, result.state_updates), decision)

    def _expired(self, context: SessionContext) -> StateUpdates:
        state, now = context.state, context.now
        updates: StateUpdates = {}
        if state.pending_disambiguation is not None and not is_fresh(state.pending_disambiguation.timestamp, now):
            updates.update(_CLEAR_DISAMBIGUATION)
        if state.pending_slots is not None and not is_fresh(state.pending_slots.asked_at, now):
            updates["pending_slots"] = None
        return updates

    async def _process(self, text: str, decision: RouteDecision, context: SessionContext) -> ProcessResult:
        had_stale_round = (
            context.state.pending_disambiguation is not None
            and not is_fresh(context.state.pending_disambiguation.timestamp, context.now)
        )
        updates = self._expired(context)

        if decision.type == RouteType.cancel_action:
            reply = CANCELLED if _has_pending(context.state) else NOTHING_TO_CANCEL
            return ProcessResult(reply, merge_updates(updates, clear_pending()), decision)

        if not decision.is_none:
            # An explicit request supersedes whatever was pending.
            updates = merge_updates(updates, clear_pending())
            action = action_from_route(decision, text, context.now)
            return await self._run(action, context, decision, updates)

        if updates:
            context = context.with_state(context.state.apply(updates))

        if had_stale_round and looks_like_choice(text):
            return ProcessResult(LOST_CONTEXT, updates, decision)

        pending = context.state.pending_disambiguation
        if pending is not None:
            try:
                chosen = resolve_choice(text, pending, context.now)
            except StaleDisambiguationError:
                return ProcessResult(LOST_CONTEXT, merge_updates(updates, _CLEAR_DISAMBIGUATION), decision)
            except AmbiguousChoiceError as e:
                if e.candidate_count == 0 and not looks_like_choice(text):
                    logger.info("Reply is not a choice, dropping disambiguation for %s", context.user_id)
                    updates = merge_updates(updates, _CLEAR_DISAMBIGUATION)
                    context = context.with_state(context.state.apply(_CLEAR_DISAMBIGUATION))
                else:
                    return ProcessResult(str(e), updates, decision)
            else:
                action = Action(
                    ActionType(pending.action),
                    {**pending.context, "targets": [match.item for match in chosen]},
                )
                return await self._run(action, context, decision, merge_updates(updates, _CLEAR_DISAMBIGUATION))

        slots = context.state.pending_slots
        if slots is not None and slots.missing:
            try:
                filled = fill_slot(slots, text, context.now)
            except SlotAnswerError:
                logger.info("Reply does not fill slot %s, abandoning", slots.missing[0])
                updates = merge_updates(updates, {"pending_slots": None})
                context = context.with_state(context.state.apply({"pending_slots": None}))
            else:
                if filled.missing:
                    return ProcessResult(next_question(filled), merge_updates(updates, {"pending_slots": filled}), decision)
                action = Action(ActionType(filled.action), dict(filled.collected))
                return await self._run(action, context, decision, merge_updates(updates, {"pending_slots": None}))

        return await self._classified(text, decision, context, updates)

    async def _classified(
        self,
        text: str,
        decision: RouteDecision,
        context: SessionContext,
        updates: StateUpdates,
    ) -> ProcessResult:
        state = context.state
        intent = await self.classify(text, context.history, state)
        logger.info(
            "Intent for user %s: %s (%.2f) %s",
            context.user_id,
            intent.intent_type,
            intent.confidence,
            intent.reason,
        )

        confirmation = state.confirmation_pending
        if intent.intent_type == IntentType.confirmation_yes and confirmation is not None:
            action = Action(ActionType(confirmation.action), dict(confirmation.params), confirmed=True)
            return await self._run(action, context, decision, merge_updates(updates, {"confirmation_pending": None}))

        if intent.intent_type == IntentType.confirmation_no and confirmation is not None:
            return ProcessResult(DECLINED, merge_updates(updates, {"confirmation_pending": None}), decision)

        if confirmation is not None and intent.intent_type != IntentType.greeting_smalltalk:
            logger.info("Dropping superseded confirmation %s for %s", confirmation.action, context.user_id)
            updates = merge_updates(updates, {"confirmation_pending": None})

        if intent.intent_type == IntentType.doc_action:
            return await self._run(Action(ActionType.document_qna, {"query": text}), context, decision, updates)

        if intent.intent_type == IntentType.simple_reminder:
            entities = {k: v for k, v in reminder_entities(text, context.now).items() if v is not None}
            return await self._run(Action(ActionType.reminder_create, entities), context, decision, updates)

        if intent.intent_type == IntentType.greeting_smalltalk:
            return await self._run(Action(ActionType.greeting), context, decision, updates)

        scoped = context.with_state(state.apply(updates)) if updates else context
        result = await self.orchestrator.run(text, scoped, hint=str(intent.intent_type))
        return ProcessResult(result.response_text, merge_updates(updates, result.state_updates), decision)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

_processor: MessageProcessor | None = None
_store: SessionStore | None = None


def get_processor() -> MessageProcessor:
    global _processor
    if _processor is None:
        _processor = MessageProcessor(create_registry(), create_http_capabilities())
    return _processor


def get_session_store() -> SessionStore:
    global _store
    if _store is None:
        _store = RedisSessionStore()
    return _store


async def process_message(
    user_id: str,
    text: str,
    state: SessionState,
    history: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> ProcessResult:
    """Process one message against a state snapshot. Never raises."""
    return await get_processor().process(user_id, text, state, history, now)


async def _ingest(processor: MessageProcessor, message: IncomingMessage, now: datetime) -> SkillResult:
    try:
        return await ingest_document(processor.capabilities, message.user_id, message.media, now)
    except CapabilityError as e:
        logger.warning("Document ingest failed for user %s: %s", message.user_id, e)
        return SkillResult(describe_capability_error(e))


async def handle_message(
    message: IncomingMessage,
    store: SessionStore | None = None,
    processor: MessageProcessor | None = None,
) -> OutgoingMessage:
    """Transport entry point: one inbound message in, one reply out.

    Read-process-write runs under a per-user Redis lock, so two webhook
    deliveries for the same user never interleave their state.
    """
    store = store or get_session_store()
    processor = processor or get_processor()
    user_id = message.user_id
    chat = {"chat_id": message.chat_id, "channel": message.channel}

    lock = redis.lock(
        f"lock:user:{user_id}",
        timeout=settings.user_lock_timeout_seconds,
        blocking_timeout=settings.user_lock_timeout_seconds,
    )
    try:
        acquired = await lock.acquire()
    except LockError:
        acquired = False
    except Exception:
        logger.exception("Failed to take lock for user %s", user_id)
        return OutgoingMessage(text=GENERIC_APOLOGY, **chat)
    if not acquired:
        logger.warning("Could not acquire lock for user %s", user_id)
        return OutgoingMessage(text=BUSY, **chat)

    try:
        reply, logged_text, route_name = await _handle_locked(message, store, processor)
    except Exception:
        logger.exception("Unhandled error for user %s", user_id)
        return OutgoingMessage(text=GENERIC_APOLOGY, **chat)
    finally:
        try:
            await lock.release()
        except RedisError as e:
            # The reply and the state delta stand even if the lock lapsed mid-turn.
            logger.warning("Lock for user %s not released cleanly: %s", user_id, e)

    try:
        await sliding_window.add_message(user_id, "user", logged_text, route_name)
        await sliding_window.add_message(user_id, "assistant", reply)
    except Exception as e:
        logger.warning("Failed to append history for user %s: %s", user_id, e)

    return OutgoingMessage(text=reply, **chat)


async def _handle_locked(
    message: IncomingMessage,
    store: SessionStore,
    processor: MessageProcessor,
) -> tuple[str, str, str | None]:
    user_id = message.user_id
    now = local_now()

    if message.type == MessageType.document:
        result = await _ingest(processor, message, now)
        logged = f"[document] {message.document_file_name or ''}".strip()
        try:
            await store.upsert(user_id, result.state_updates)
        except Exception:
            logger.exception("Failed to save document for user %s", user_id)
            return GENERIC_APOLOGY, logged, "document_upload"
        return result.response_text, logged, "document_upload"

    text = (message.text or "").strip()
    if not text:
        reply = VOICE_NOT_TRANSCRIBED if message.type == MessageType.voice else UNSUPPORTED
        return reply, f"[{message.type}]", None

    try:
        state = await store.get(user_id)
        history = await sliding_window.get_recent_messages(user_id)
    except Exception:
        logger.exception("Failed to load session for user %s", user_id)
        return GENERIC_APOLOGY, text, None

    result = await processor.process(user_id, text, state, history, now, user_name=message.user_name)
    try:
        await store.upsert(user_id, result.state_updates)
    except Exception:
        logger.exception("Failed to save session for user %s", user_id)
    return result.reply_text, text, str(result.chosen_route.type)
