"""Drive skill: search files in Google Drive."""

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.skills.base import SkillResult
from src.skills.slots import ask_for_slots


class DriveSkill:
    name = "drive"
    intents = [ActionType.drive_search]
    service = "drive"

    @observe(name="drive")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        query = action.get("query")
        if not query:
            return ask_for_slots(action, ["query"], context.now)

        result = await capabilities.get(self.service).call("search", context.user_id, {"query": query})
        if result.message:
            return SkillResult(result.message)

        files = list(result.data or [])
        if not files:
            return SkillResult(SERVICE_ERRORS["drive"].not_found)
        lines = [f"📁 Found {len(files)} file{'s' if len(files) != 1 else ''}:", ""]
        lines += [f"• {f.get('name') or f.get('title')}" + (f"\n  {f['url']}" if f.get("url") else "") for f in files]
        return SkillResult("\n".join(lines))


skill = DriveSkill()
