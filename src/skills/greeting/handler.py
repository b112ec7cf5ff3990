"""Greeting skill: branded introduction; also clears pending state left untouched for 5 minutes."""

import logging

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.core.session import StateUpdates, is_fresh
from src.skills.base import SkillResult

logger = logging.getLogger(__name__)

GREETING_STALE_SECONDS = 300

INTRODUCTION = (
    "I am Man Friday, your AI executive assistant. I can help you with your calendar, "
    "emails, tasks, reminders, and documents, all from WhatsApp. How can I assist you today?"
)


def stale_state_updates(context: SessionContext) -> StateUpdates:
    state = context.state
    now = context.now
    updates: StateUpdates = {}
    if state.confirmation_pending and not is_fresh(
        state.confirmation_pending.asked_at, now, GREETING_STALE_SECONDS
    ):
        updates["confirmation_pending"] = None
    if state.pending_slots and not is_fresh(state.pending_slots.asked_at, now, GREETING_STALE_SECONDS):
        updates["pending_slots"] = None
    if state.contacts_search_results is not None and not is_fresh(
        state.contacts_search_timestamp, now, GREETING_STALE_SECONDS
    ):
        updates["contacts_search_results"] = None
        updates["contacts_search_timestamp"] = None
    return updates


class GreetingSkill:
    name = "greeting"
    intents = [ActionType.greeting]
    service = None

    @observe(name="greeting")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        updates = stale_state_updates(context)
        if updates:
            logger.info("Cleared stale pending state for user %s: %s", context.user_id, sorted(updates))

        text = INTRODUCTION
        if context.user_name:
            text = f"Hi {context.user_name}! {text}"
        return SkillResult(text, updates)


skill = GreetingSkill()
