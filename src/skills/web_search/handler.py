"""Web search skill: answer a question from the web search service."""

import logging

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.skills.base import SkillResult
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)


class WebSearchSkill:
    name = "web_search"
    intents = [ActionType.web_search]
    service = "web_search"

    @observe(name="web_search")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        query = str(action.get("query", "")).strip()
        if not query:
            return ask_for_slots(action, ["query"], context.now)

        result = await capabilities.get(self.service).call("search", context.user_id, {"query": query})
        if not result.message:
            logger.info("Web search returned nothing for user %s", context.user_id)
        return SkillResult(result.message or SERVICE_ERRORS["web_search"].not_found)


skill = WebSearchSkill()
