from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ActionType(StrEnum):
    daily_briefing = "daily_briefing"
    tasks_read = "tasks_read"
    tasks_create = "tasks_create"
    tasks_complete = "tasks_complete"
    tasks_delete = "tasks_delete"
    calendar_read = "calendar_read"
    calendar_create = "calendar_create"
    calendar_update = "calendar_update"
    calendar_delete = "calendar_delete"
    gmail_check = "gmail_check"
    gmail_search = "gmail_search"
    gmail_mark_read = "gmail_mark_read"
    email_draft = "email_draft"
    email_send = "email_send"
    reminder_create = "reminder_create"
    reminder_snooze = "reminder_snooze"
    contact_lookup = "contact_lookup"
    drive_search = "drive_search"
    document_qna = "document_qna"
    document_list = "document_list"
    document_recall = "document_recall"
    web_search = "web_search"
    greeting = "greeting"


# Never executed on first request; they go through a YES/NO confirmation.
RED_FLAG_ACTIONS: frozenset[ActionType] = frozenset(
    {
        ActionType.calendar_delete,
        ActionType.tasks_delete,
        ActionType.gmail_mark_read,
        ActionType.email_send,
    }
)


@dataclass
class Action:
    """A normalized action ready for dispatch.

    ``entities`` carries the extracted parameters. ``targets`` inside it, when
    present, holds items already resolved through disambiguation.
    """

    type: ActionType
    entities: dict[str, Any] = field(default_factory=dict)
    confirmed: bool = False

    @property
    def needs_confirmation(self) -> bool:
        return self.type in RED_FLAG_ACTIONS and not self.confirmed

    def get(self, key: str, default: Any = None) -> Any:
        value = self.entities.get(key)
        return default if value is None else value
