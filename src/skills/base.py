from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from src.core.schemas.action import ActionType

if TYPE_CHECKING:
    from src.capabilities.base import CapabilityRegistry
    from src.core.context import SessionContext
    from src.core.schemas.action import Action


@dataclass
class SkillResult:
    """Result of skill execution: the reply plus a session-state delta."""

    response_text: str
    state_updates: dict[str, Any] = field(default_factory=dict)


class BaseSkill(Protocol):
    """Interface for all skill modules."""

    name: str
    intents: list[ActionType]
    service: str | None

    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult: ...


class IncompleteRegistryError(RuntimeError):
    """Some action types have no registered skill."""


class SkillRegistry:
    """Skill registry keyed by action type."""

    def __init__(self):
        self._skills: dict[ActionType, BaseSkill] = {}

    def register(self, skill: BaseSkill) -> None:
        for intent in skill.intents:
            if intent in self._skills and self._skills[intent] is not skill:
                raise ValueError(f"Action {intent} is already handled by {self._skills[intent].name}")
            self._skills[ActionType(intent)] = skill

    def get(self, intent: ActionType | str) -> BaseSkill | None:
        return self._skills.get(ActionType(intent))

    def all_skills(self) -> list[BaseSkill]:
        return list({id(s): s for s in self._skills.values()}.values())

    def missing(self) -> list[ActionType]:
        return [a for a in ActionType if a not in self._skills]

    def ensure_complete(self) -> None:
        """Refuse to run with an action type that nothing handles."""
        missing = self.missing()
        if missing:
            raise IncompleteRegistryError(
                "No skill registered for: " + ", ".join(str(a) for a in missing)
            )
