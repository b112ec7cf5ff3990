"""Contacts skill: look up a person's email or phone in Google Contacts."""

import logging
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.skills.base import SkillResult
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)


def format_contact(contact: dict[str, Any]) -> str:
    lines = [f"👤 {contact.get('name') or 'Unknown'}"]
    if contact.get("email"):
        lines.append(f"   📧 {contact['email']}")
    if contact.get("phone"):
        lines.append(f"   📞 {contact['phone']}")
    return "\n".join(lines)


class ContactsSkill:
    name = "contacts"
    intents = [ActionType.contact_lookup]
    service = "contacts"

    @observe(name="contacts")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        name = action.get("name")
        if not name:
            return ask_for_slots(action, ["name"], context.now)

        result = await capabilities.get(self.service).call("lookup", context.user_id, {"name": name})
        contacts = list(result.data or [])
        if not contacts and not result.message:
            return SkillResult(SERVICE_ERRORS["contacts"].not_found)

        updates = {
            "contacts_search_results": contacts,
            "contacts_search_timestamp": context.now,
        }
        if result.message:
            return SkillResult(result.message, updates)
        return SkillResult("\n\n".join(format_contact(c) for c in contacts), updates)


skill = ContactsSkill()
