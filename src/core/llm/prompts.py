from typing import Any

AGENT_SYSTEM_PROMPT = """<role>
You are Man Friday, an AI executive assistant on WhatsApp.
You help {user_name} with calendar, email, tasks, reminders, contacts,
Google Drive, uploaded documents and web search.
Current local time: {now} ({timezone}).
</role>

<rules>
- Either call exactly one tool, or reply in 1-3 short sentences.
- Put times in arguments as ISO 8601 with offset, or as the user's own phrase
  ("tomorrow 3pm"). Never invent a time the user did not give.
- Emails: use email_draft with "to" (name or address), "subject" and
  "instructions". Never use email_send directly.
- Deleting, cancelling and marking mail read are confirmed with the user
  afterwards; still pick the tool.
- If the request is unclear, ask one clarifying question in "reply".
- Formatting: WhatsApp style (*bold*, _italic_). No Markdown headers.
</rules>

<tools>
{tools}
</tools>

<session>
{session}
</session>"""

TOOL_DESCRIPTIONS: dict[str, str] = {
    "daily_briefing": "today's briefing: meetings, tasks, unread email",
    "tasks_read": "list tasks. args: show_all (bool)",
    "tasks_create": "add a task. args: title, due",
    "tasks_complete": "mark a task done. args: task_index (number from the last list) or title",
    "tasks_delete": "delete a task. args: task_index or title",
    "calendar_read": "list events. args: time_min, time_max, label",
    "calendar_create": "create an event. args: title, start, duration_minutes, person",
    "calendar_update": "move an event. args: event_title, person, date, new_start",
    "calendar_delete": "cancel an event. args: event_title, person, date",
    "gmail_check": "summarize unread inbox",
    "gmail_search": "find emails from someone. args: sender_name, days_back",
    "gmail_mark_read": "mark all unread emails as read",
    "email_draft": "draft an email. args: to, subject, instructions",
    "reminder_create": "set a reminder. args: text, due",
    "reminder_snooze": "snooze the last reminder. args: duration_minutes",
    "contact_lookup": "find a contact's email or phone. args: name",
    "drive_search": "search Google Drive. args: query",
    "document_qna": "answer about the last uploaded document. args: query",
    "document_list": "list uploaded documents",
    "document_recall": "load a previous upload. args: document_name",
    "web_search": "search the web. args: query",
}


def format_tools() -> str:
    return "\n".join(f"- {name}: {description}" for name, description in TOOL_DESCRIPTIONS.items())


class PromptAdapter:
    """Adapts prompts for the LLM providers in use."""

    @staticmethod
    def for_claude(
        system: str,
        messages: list[dict[str, str]],
        cache: bool = True,
    ) -> dict[str, Any]:
        """Format for Anthropic Claude API with prompt caching."""
        system_blocks = [{"type": "text", "text": system}]
        if cache:
            system_blocks[0]["cache_control"] = {"type": "ephemeral"}

        return {
            "system": system_blocks,
            "messages": messages,
        }
