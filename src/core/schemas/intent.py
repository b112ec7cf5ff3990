from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class IntentType(StrEnum):
    confirmation_yes = "confirmation_yes"
    confirmation_no = "confirmation_no"
    doc_action = "doc_action"
    simple_reminder = "simple_reminder"
    greeting_smalltalk = "greeting_smalltalk"
    email_action = "email_action"
    handoff_to_orchestrator = "handoff_to_orchestrator"


class IntentClassification(BaseModel):
    intent_type: IntentType
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str = ""


class AgentDecision(BaseModel):
    """Structured answer of the orchestrator backend.

    Either ``tool`` names an action to run with ``arguments``, or ``reply``
    is sent to the user as-is.
    """

    tool: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    reply: str | None = None
