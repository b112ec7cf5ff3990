"""YES/NO confirmations for red-flag actions."""

import re
from datetime import datetime

from src.core.schemas.action import Action
from src.core.session import ConfirmationPending, set_confirmation
from src.skills.base import SkillResult

YES_WORDS = frozenset(
    {
        "yes",
        "y",
        "yeah",
        "yep",
        "yup",
        "sure",
        "ok",
        "okay",
        "confirm",
        "confirmed",
        "go ahead",
        "proceed",
        "do it",
        "go",
        "affirmative",
        "yes please",
        "send it",
    }
)

NO_WORDS = frozenset(
    {
        "no",
        "n",
        "nope",
        "nah",
        "cancel",
        "stop",
        "dont",
        "don't",
        "negative",
        "no thanks",
        "don't send",
        "dont send",
    }
)

CONFIRM_FOOTER = "Reply YES to confirm or NO to cancel."


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower().replace("’", "'")).strip(" \t\n.!?,")


def is_yes(text: str) -> bool:
    return _clean(text) in YES_WORDS


def is_no(text: str) -> bool:
    return _clean(text) in NO_WORDS


def request_confirmation(
    action: Action,
    summary: str,
    now: datetime,
    footer: str = CONFIRM_FOOTER,
) -> SkillResult:
    """Park the action in ``confirmation_pending`` and ask YES/NO."""
    pending = ConfirmationPending(
        action=str(action.type),
        params=action.entities,
        summary=summary,
        asked_at=now,
    )
    return SkillResult(
        response_text=f"{summary}\n\n{footer}",
        state_updates=set_confirmation(pending),
    )
