"""Action dispatcher: one Action in, one reply plus state delta out.

Capability and contract errors stop here. Nothing a skill raises on their
account reaches the router as an exception.
"""

import logging

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import LOST_CONTEXT, describe_capability_error
from src.core.exceptions import CapabilityError, DisambiguationError
from src.core.observability import observe
from src.core.schemas.action import Action
from src.skills.base import SkillRegistry, SkillResult

logger = logging.getLogger(__name__)


class ActionDispatcher:
    def __init__(self, registry: SkillRegistry, capabilities: CapabilityRegistry):
        registry.ensure_complete()
        self.registry = registry
        self.capabilities = capabilities

    @observe(name="dispatch")
    async def dispatch(self, action: Action, context: SessionContext) -> SkillResult:
        skill = self.registry.get(action.type)
        if skill is None:
            # ensure_complete() ran at start-up; reaching this is a registry bug
            raise LookupError(f"No skill for action {action.type}")

        logger.info(
            "Dispatching %s to %s for user %s (confirmed=%s)",
            action.type,
            skill.name,
            context.user_id,
            action.confirmed,
        )
        try:
            return await skill.execute(action, context, self.capabilities)
        except CapabilityError as e:
            logger.warning(
                "Capability %s failed for user %s: %s (status=%s)",
                e.service,
                context.user_id,
                e.error_type,
                e.status_code,
            )
            return SkillResult(describe_capability_error(e))
        except DisambiguationError as e:
            logger.warning("Stale choice for user %s in %s: %s", context.user_id, action.type, e)
            return SkillResult(LOST_CONTEXT, {"pending_disambiguation": None})
