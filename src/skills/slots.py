"""Slot filling: collect missing action parameters one question at a time."""

from datetime import datetime

from src.core.schemas.action import Action
from src.core.session import PendingSlots
from src.core.time_parser import find_natural_time
from src.skills.base import SkillResult

TIME_SLOTS = frozenset({"start", "new_start", "due"})

SLOT_QUESTIONS: dict[str, str] = {
    "start": "📅 When should I schedule it? (e.g. \"tomorrow 3pm\")",
    "new_start": "📅 What time should I move it to?",
    "due": "⏰ When should I remind you? (e.g. \"at 5pm\" or \"in 2 hours\")",
    "text": "⏰ What should I remind you about?",
    "title": "📝 What should the task say?",
    "to": "📧 Who should I send it to?",
    "sender_name": "📧 Whose emails should I look for?",
    "name": "👤 Whose contact details do you need?",
    "document_name": "📄 Which document should I open?",
    "query": "🔎 What should I search for?",
}


class SlotAnswerError(ValueError):
    """The reply does not fill the slot that was asked for."""


def ask_for_slots(action: Action, missing: list[str], now: datetime) -> SkillResult:
    pending = PendingSlots(
        action=str(action.type),
        collected={k: v for k, v in action.entities.items() if v is not None},
        missing=missing,
        asked_at=now,
    )
    return SkillResult(
        response_text=SLOT_QUESTIONS.get(missing[0], f"What is the {missing[0]}?"),
        state_updates={"pending_slots": pending},
    )


def fill_slot(pending: PendingSlots, reply: str, now: datetime) -> PendingSlots:
    """Fill the first missing slot from the reply and return the updated set.

    Raises SlotAnswerError when a time slot gets a reply with no time in it.
    """
    slot = pending.missing[0]
    if slot in TIME_SLOTS:
        value = find_natural_time(reply, now)
        if value is None:
            raise SlotAnswerError(f"No time found for slot {slot}")
    else:
        value = reply.strip()
        if not value:
            raise SlotAnswerError(f"Empty answer for slot {slot}")

    return PendingSlots(
        action=pending.action,
        collected={**pending.collected, slot: value},
        missing=pending.missing[1:],
        asked_at=now,
    )


def next_question(pending: PendingSlots) -> str:
    slot = pending.missing[0]
    return SLOT_QUESTIONS.get(slot, f"What is the {slot}?")
