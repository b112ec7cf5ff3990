"""Daily briefing skill: calendar, tasks, reminders and inbox in one message."""

import logging

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.skills.base import SkillResult

logger = logging.getLogger(__name__)


class BriefingSkill:
    name = "briefing"
    intents = [ActionType.daily_briefing]
    service = "briefing"

    @observe(name="daily_briefing")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        result = await capabilities.get(self.service).call(
            "generate",
            context.user_id,
            {"date": context.now.astimezone(context.tz).date().isoformat(), "manual": True},
        )
        return SkillResult(result.message or SERVICE_ERRORS["briefing"].not_found)


skill = BriefingSkill()
