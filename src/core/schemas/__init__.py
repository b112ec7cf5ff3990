from src.core.schemas.action import RED_FLAG_ACTIONS, Action, ActionType
from src.core.schemas.intent import AgentDecision, IntentClassification, IntentType
from src.core.schemas.route import RouteDecision, RouteType

__all__ = [
    "RED_FLAG_ACTIONS",
    "Action",
    "ActionType",
    "AgentDecision",
    "IntentClassification",
    "IntentType",
    "RouteDecision",
    "RouteType",
]
