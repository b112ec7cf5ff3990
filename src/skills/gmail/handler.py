"""Gmail skill: inbox summary, sender search, mark-all-read, drafts and sending."""

import logging
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.disambiguation import present_choices
from src.core.error_messages import SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.skills.base import SkillResult
from src.skills.confirmation import request_confirmation
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)

DEFAULT_INBOX_COUNT = 10
SEND_FOOTER = "Reply YES to send it or NO to keep it as a draft."


def _describe_contact(contact: dict[str, Any]) -> str:
    name = contact.get("name") or contact.get("display_name") or "Unknown"
    email = contact.get("email")
    return f"{name} <{email}>" if email else str(name)


class GmailSkill:
    name = "gmail"
    intents = [
        ActionType.gmail_check,
        ActionType.gmail_search,
        ActionType.gmail_mark_read,
        ActionType.email_draft,
        ActionType.email_send,
    ]
    service = "gmail"

    @observe(name="gmail")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        gmail = capabilities.get(self.service)

        if action.type == ActionType.gmail_check:
            result = await gmail.call(
                "summarize_inbox",
                context.user_id,
                {"max_count": action.get("max_count", DEFAULT_INBOX_COUNT)},
            )
            return SkillResult(result.message or "📭 No unread emails in your Primary inbox.")

        if action.type == ActionType.gmail_search:
            sender = action.get("sender_name")
            if not sender:
                return ask_for_slots(action, ["sender_name"], context.now)
            result = await gmail.call(
                "search",
                context.user_id,
                {"sender_name": sender, "days_back": action.get("days_back")},
            )
            return SkillResult(result.message or SERVICE_ERRORS["gmail"].not_found)

        if action.type == ActionType.gmail_mark_read:
            if action.needs_confirmation:
                return request_confirmation(
                    Action(action.type, {"scope": "all"}),
                    "📧 Mark all unread emails in your inbox as read?",
                    context.now,
                )
            result = await gmail.call("mark_all_read", context.user_id, {})
            return SkillResult(result.message or "✅ All emails marked as read.")

        if action.type == ActionType.email_draft:
            return await self._draft(action, context, capabilities)
        return await self._send(action, context, gmail)

    async def _resolve_recipient(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> str | SkillResult:
        """Email address for the draft, looking the name up in contacts if needed."""
        targets = action.get("targets")
        if targets:
            return str(targets[0].get("email", ""))

        to = str(action.get("to", "")).strip()
        if "@" in to:
            return to

        result = await capabilities.get("contacts").call("lookup", context.user_id, {"name": to})
        contacts = [c for c in (result.data or []) if c.get("email")]
        if not contacts:
            return SkillResult(f"👤 I couldn't find an email address for {to}. What's their email?")
        if len(contacts) > 1:
            draft = {k: v for k, v in action.entities.items() if k != "targets"}
            text, updates = present_choices(
                str(action.type),
                contacts,
                context.now,
                describe=_describe_contact,
                context=draft,
                header=f"I found {len(contacts)} contacts named {to}. Who should I email?",
            )
            updates["contacts_search_results"] = contacts
            updates["contacts_search_timestamp"] = context.now
            return SkillResult(text, updates)
        return str(contacts[0]["email"])

    async def _draft(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        if not action.get("to") and not action.get("targets"):
            return ask_for_slots(action, ["to"], context.now)

        recipient = await self._resolve_recipient(action, context, capabilities)
        if isinstance(recipient, SkillResult):
            return recipient

        entities = {
            "to": recipient,
            "subject": action.get("subject"),
            "body": action.get("body"),
            "instructions": action.get("instructions") or context.message_text,
        }
        result = await capabilities.get(self.service).call("create_draft", context.user_id, entities)
        data = result.data or {}
        summary = result.message or f"📝 Draft to {recipient} is ready."

        send = Action(
            ActionType.email_send,
            {
                "draft_id": data.get("draft_id"),
                "to": recipient,
                "subject": data.get("subject") or action.get("subject"),
            },
        )
        return request_confirmation(send, summary, context.now, footer=SEND_FOOTER)

    async def _send(self, action: Action, context: SessionContext, gmail) -> SkillResult:
        to = action.get("to")
        if action.needs_confirmation:
            subject = action.get("subject")
            about = f" about \"{subject}\"" if subject else ""
            return request_confirmation(
                action, f"📧 Send the email to {to}{about}?", context.now, footer=SEND_FOOTER
            )

        if action.get("draft_id"):
            result = await gmail.call("send_draft", context.user_id, {"draft_id": action.get("draft_id")})
        else:
            result = await gmail.call(
                "send",
                context.user_id,
                {"to": to, "subject": action.get("subject"), "body": action.get("body")},
            )
        logger.info("Email sent for user %s", context.user_id)
        return SkillResult(result.message or f"✅ Email sent to {to}.")


skill = GmailSkill()
