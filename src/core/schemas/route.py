from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict


class RouteType(StrEnum):
    daily_briefing = "daily_briefing"
    tasks = "tasks"
    calendar_read = "calendar_read"
    calendar_create = "calendar_create"
    calendar_update = "calendar_update"
    calendar_delete = "calendar_delete"
    gmail_check = "gmail_check"
    gmail_search = "gmail_search"
    gmail_mark_read = "gmail_mark_read"
    reminder_create = "reminder_create"
    reminder_snooze = "reminder_snooze"
    contact_lookup = "contact_lookup"
    drive_search = "drive_search"
    document_qna = "document_qna"
    document_list = "document_list"
    document_recall = "document_recall"
    web_search = "web_search"
    cancel_action = "cancel_action"
    none = "none"


class RouteDecision(BaseModel):
    """Coarse route produced by the phrase router. Immutable."""

    model_config = ConfigDict(frozen=True)

    type: RouteType
    action: Literal["read", "read_all"] | None = None  # tasks only
    show_all: bool = False
    show_rest: bool = False

    def __init__(self, type: RouteType, **data):
        super().__init__(type=type, **data)

    @property
    def is_none(self) -> bool:
        return self.type == RouteType.none
