"""Reminders skill: create reminders (with duplicate guard) and snooze them.

Delivery and the pending -> sent/failed transition belong to the external
scheduler; this skill only creates rows and moves ``due_ts``.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import REMINDER_INVALID_TIME, REMINDER_PAST_TIME, SERVICE_ERRORS
from src.core.matching import normalize_title
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.core.time_parser import coerce_datetime, format_for_display
from src.skills.base import SkillResult
from src.skills.confirmation import request_confirmation
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)

DEFAULT_SNOOZE_MINUTES = 30
DUPLICATE_WINDOW = timedelta(hours=1)


def find_duplicate(
    reminders: list[dict[str, Any]],
    text: str,
    due: datetime,
) -> dict[str, Any] | None:
    """Pending reminder with the same text due within an hour of ``due``."""
    wanted = normalize_title(text)
    for reminder in reminders:
        if reminder.get("status", "pending") != "pending":
            continue
        if normalize_title(str(reminder.get("text", ""))) != wanted:
            continue
        existing_due = coerce_datetime(reminder.get("due_ts"), due)
        if existing_due is not None and abs(existing_due - due) <= DUPLICATE_WINDOW:
            return reminder
    return None


def pick_snooze_target(reminders: list[dict[str, Any]], now: datetime) -> dict[str, Any] | None:
    """Most recently attempted pending reminder, else the soonest due."""
    pending = [r for r in reminders if r.get("status", "pending") == "pending"]
    if not pending:
        return None

    attempted = [r for r in pending if r.get("last_attempt_ts")]
    if attempted:
        return max(attempted, key=lambda r: coerce_datetime(r["last_attempt_ts"], now) or now)
    return min(pending, key=lambda r: coerce_datetime(r.get("due_ts"), now) or now)


class RemindersSkill:
    name = "reminders"
    intents = [ActionType.reminder_create, ActionType.reminder_snooze]
    service = "reminders"

    @observe(name="reminders")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        capability = capabilities.get(self.service)
        if action.type == ActionType.reminder_create:
            return await self._create(action, context, capability)
        return await self._snooze(action, context, capability)

    async def _pending(self, context: SessionContext, capability) -> list[dict[str, Any]]:
        result = await capability.call("list_pending", context.user_id, {})
        return list(result.data or [])

    async def _create(self, action: Action, context: SessionContext, capability) -> SkillResult:
        text = action.get("text")
        raw_due = action.get("due")
        due = coerce_datetime(raw_due, context.now)
        if raw_due and due is None:
            return SkillResult(REMINDER_INVALID_TIME)
        missing = [slot for slot, value in (("text", text), ("due", due)) if not value]
        if missing:
            return ask_for_slots(action, missing, context.now)

        if due <= context.now:
            return SkillResult(REMINDER_PAST_TIME)

        if not (action.confirmed or action.get("force")):
            duplicate = find_duplicate(await self._pending(context, capability), text, due)
            if duplicate is not None:
                existing = coerce_datetime(duplicate.get("due_ts"), context.now) or due
                logger.info("Duplicate reminder for user %s: %s", context.user_id, text)
                return request_confirmation(
                    Action(action.type, {"text": text, "due": due, "force": True}),
                    f"⚠️ You already have a reminder \"{duplicate.get('text')}\" at "
                    f"{format_for_display(existing.astimezone(context.tz))}. Create another one?",
                    context.now,
                )

        result = await capability.call("create", context.user_id, {"text": text, "due_ts": due})
        when = format_for_display(due.astimezone(context.tz))
        return SkillResult(result.message or f"⏰ Got it! I'll remind you to {text} on {when}.")

    async def _snooze(self, action: Action, context: SessionContext, capability) -> SkillResult:
        minutes = int(action.get("duration_minutes", DEFAULT_SNOOZE_MINUTES))
        target = pick_snooze_target(await self._pending(context, capability), context.now)
        if target is None:
            return SkillResult(SERVICE_ERRORS["reminders"].not_found)

        new_due = context.now + timedelta(minutes=minutes)
        result = await capability.call(
            "snooze",
            context.user_id,
            {"reminder_id": target["id"], "due_ts": new_due},
        )
        when = format_for_display(new_due.astimezone(context.tz))
        return SkillResult(result.message or f"😴 Snoozed \"{target.get('text')}\" until {when}.")


skill = RemindersSkill()
