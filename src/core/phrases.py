"""Phrase tables for the deterministic router.

Each group is an ordered, immutable table. ``PhraseRouter`` walks
``ROUTE_TABLE`` top to bottom and stops at the first group that matches,
so the position of a group in the table is its precedence.
"""

import re
from dataclasses import dataclass

from src.core.schemas.route import RouteDecision, RouteType


@dataclass(frozen=True)
class PhraseGroup:
    """One row of the routing table.

    A group matches when any of its substrings is contained in the message,
    any of its regexes searches successfully, or all words of any
    ``co_occurring`` tuple appear in the message.
    """

    name: str
    decision: RouteDecision
    phrases: tuple[str, ...] = ()
    patterns: tuple[re.Pattern[str], ...] = ()
    co_occurring: tuple[tuple[str, ...], ...] = ()

    def matches(self, msg: str) -> bool:
        if any(phrase in msg for phrase in self.phrases):
            return True
        if any(pattern.search(msg) for pattern in self.patterns):
            return True
        return any(all(word in msg for word in words) for words in self.co_occurring)


def _compile(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# ---------------------------------------------------------------------------
# Cancel / abort
# ---------------------------------------------------------------------------

# Whole-message matches only.
CANCEL_EXACT: frozenset[str] = frozenset(
    {
        "cancel",
        "stop",
        "abort",
        "quit",
        "nevermind",
        "never mind",
        "forget it",
        "no cancel",
        "please cancel",
        "cancel please",
        "cancel it",
        "cancel that",
        "cancel this",
    }
)

# Matches at message start, followed by a word boundary.
CANCEL_PREFIXES: tuple[str, ...] = (
    "cancel that",
    "cancel this",
    "cancel it",
    "never mind",
    "nevermind",
    "forget it",
    "forget that",
    "forget about it",
    "scratch that",
    "abort",
    "stop that",
    "don't do it",
    "dont do it",
)

# ---------------------------------------------------------------------------
# Daily briefing
# ---------------------------------------------------------------------------

BRIEFING_PHRASES: tuple[str, ...] = (
    "give me my daily briefing",
    "show my daily briefing",
    "give me my briefing",
    "show my briefing",
    "send me my briefing",
    "get my briefing",
    "what's my briefing",
    "whats my briefing",
    "my briefing today",
    "give me briefing",
    "briefing today",
    "daily briefing",
    "morning briefing",
    "briefing",
    "daily update",
    "morning update",
    "daily summary",
    "morning summary",
)

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

TASKS_SHOW_ALL_PHRASES: tuple[str, ...] = (
    "give me the full list of tasks",
    "show me all tasks",
    "show all tasks",
    "give me all tasks",
    "all pending tasks",
    "list all my tasks",
    "full list of tasks",
    "complete list of tasks",
    "entire task list",
    "all my tasks",
)

TASKS_SHOW_REST_PHRASES: tuple[str, ...] = (
    "balance pending tasks",
    "show remaining tasks",
    "rest of the tasks",
    "show me the rest",
    "show more tasks",
    "the other tasks",
    "remaining tasks",
    "rest of tasks",
    "next 10 tasks",
    "balance pending",
    "balance tasks",
    "show the rest",
    "show me more",
    "more tasks",
    "next tasks",
    "show rest",
    "show more",
    "next page",
)

TASKS_SHOW_REST_PATTERNS = _compile(r"the other \d+ tasks?", r"which are the \d+")

TASKS_INITIAL_PHRASES: tuple[str, ...] = (
    "what tasks do i have today",
    "what tasks do i have",
    "what tasks are pending",
    "what are my tasks",
    "what's on my plate",
    "whats on my plate",
    "what do i need to do",
    "show my tasks",
    "list my tasks",
    "show my to-do",
    "show my todo",
    "my to-do list",
    "my todo list",
    "pending tasks",
    "my tasks",
)

# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------

# Mutation groups are evaluated before read; "schedule" is a regex so that
# "reschedule meeting" does not read as a create.
CALENDAR_CREATE_PHRASES: tuple[str, ...] = (
    "create a meeting",
    "create meeting",
    "add to calendar",
    "add to my calendar",
    "put it on my calendar",
    "block time",
    "block my calendar",
    "book time",
    "book a meeting",
    "set up a meeting",
    "set up meeting",
    "set up a call",
)

CALENDAR_CREATE_PATTERNS = _compile(r"(?<!re)schedule (?:a |an )?(?:meeting|call|sync|event)")

CALENDAR_UPDATE_PHRASES: tuple[str, ...] = (
    "reschedule",
    "move the meeting",
    "move my meeting",
    "move meeting",
    "change the meeting",
    "change my meeting",
    "change meeting",
    "postpone",
    "bring forward",
    "shift the meeting",
    "shift my meeting",
    "shift meeting",
    "push the meeting",
    "push my meeting",
)

CALENDAR_DELETE_PHRASES: tuple[str, ...] = (
    "cancel the meeting",
    "cancel my meeting",
    "cancel meeting",
    "cancel the call",
    "cancel my call",
    "cancel the appointment",
    "cancel my appointment",
    "cancel appointment",
    "delete the meeting",
    "delete my meeting",
    "delete meeting",
    "delete the event",
    "delete appointment",
    "remove the meeting",
    "remove meeting",
    "remove the event",
)

CALENDAR_DELETE_PATTERNS = _compile(r"\bcancel (?:the |my )?[\w' -]*?\b(?:meeting|call|sync|appointment|event)\b")

CALENDAR_READ_PHRASES: tuple[str, ...] = (
    "what's on my calendar",
    "whats on my calendar",
    "show my calendar",
    "check my calendar",
    "my calendar",
    "do i have meetings",
    "do i have any meetings",
    "what meetings do i have",
    "am i free",
    "what's my schedule",
    "whats my schedule",
    "schedule for today",
    "schedule for tomorrow",
    "calendar today",
    "calendar tomorrow",
    "any meetings",
    "meetings today",
    "meetings tomorrow",
    # week ranges
    "this week's meetings",
    "this weeks meetings",
    "meetings this week",
    "calendar this week",
    "schedule this week",
    "my week look",
    "meetings next week",
    "calendar next week",
    "schedule next week",
    "upcoming meetings",
    "next 7 days",
    "next seven days",
    "coming week",
)

# ---------------------------------------------------------------------------
# Gmail
# ---------------------------------------------------------------------------

GMAIL_CHECK_PHRASES: tuple[str, ...] = (
    "check my inbox",
    "what's in my inbox",
    "whats in my inbox",
    "any new emails",
    "any new email",
    "email summary",
    "summarize my emails",
    "summarize my email",
    "any unread emails",
    "show unread emails",
    "my unread emails",
    "what are my unread emails",
)

# "check emails from X" is a search.
GMAIL_CHECK_PATTERNS = _compile(r"\bcheck (?:my )?e?mails?\b(?! from)")

GMAIL_SEARCH_PHRASES: tuple[str, ...] = (
    "find emails from",
    "find email from",
    "search emails from",
    "search email from",
    "show me emails from",
    "show emails from",
    "pull up email from",
    "pull up emails from",
    "look for email from",
    "look for emails from",
    "emails from",
    "messages from",
)

GMAIL_MARK_READ_PHRASES: tuple[str, ...] = (
    "mark all emails as read",
    "mark all unread emails as read",
    "mark emails as read",
    "mark all as read",
    "mark all read",
    "clear my inbox",
    "clean up email",
    "clean up my inbox",
)

# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------

REMINDER_CREATE_PHRASES: tuple[str, ...] = (
    "set a reminder",
    "set reminder",
    "create a reminder",
    "create reminder",
    "add a reminder",
    "don't let me forget",
    "dont let me forget",
    "alert me",
    "notify me",
)

# "remind me later" belongs to snooze.
REMINDER_CREATE_PATTERNS = _compile(r"\bremind me\b(?!\s+(?:again\s+)?later)")

REMINDER_SNOOZE_PHRASES: tuple[str, ...] = (
    "snooze",
    "remind me later",
    "remind me again later",
    "ask me later",
    "push it back",
)

# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

CONTACT_DETAIL = r"(?:email(?: address| id)?|e-mail|phone(?: number)?|number|mobile|contact(?: details| info)?|address)"

# Capture group 1 is the person's name in every pattern.
CONTACT_PATTERNS = _compile(
    rf"\bwhat(?:'s| is) ([a-z][a-z .'-]*?)'s {CONTACT_DETAIL}\b",
    rf"\b(?:find|get|give me|look ?up|search for|share|send me) ([a-z][a-z .'-]*?)'s {CONTACT_DETAIL}\b",
    r"\b(?:email address|email id|phone number|phone|mobile number|number|contact details|contact info) (?:of|for) ([a-z][a-z .'-]*?)\s*[?.!]*$",
    r"\b(?:look ?up|find|search for|search) (?:the )?contacts? (?:for |of |details for )?([a-z][a-z .'-]*?)\s*[?.!]*$",
)

# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------

DRIVE_PHRASES: tuple[str, ...] = (
    "search my google drive",
    "search google drive",
    "search my drive",
    "search drive",
    "find in drive",
    "find in my drive",
    "look in my drive",
    "look in drive",
    "in my drive",
    "on my drive",
    "from my drive",
    "in google drive",
    "on google drive",
    "from google drive",
)

# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

DOCUMENT_LIST_PHRASES: tuple[str, ...] = (
    "list my uploaded documents",
    "show my uploaded documents",
    "my uploaded documents",
    "my uploaded files",
    "list my documents",
    "show my documents",
    "what documents have i uploaded",
    "what documents did i upload",
    "what files have i uploaded",
    "documents i uploaded",
    "docs i uploaded",
    "files i uploaded",
    "list documents",
    "my documents",
)

DOCUMENT_KIND = r"(?:pdf|doc|docx|document|file)"

# Capture group 1 is the document name.
DOCUMENT_RECALL_PATTERNS = _compile(
    rf"\b(?:open|use|load|recall|pull up|bring up|go back to|switch to) (?:the |my |that )?{DOCUMENT_KIND} "
    r"(?:from|called|named|titled|about|on) [\"']?(.+?)[\"']?\s*[?.!]*$",
    rf"\b(?:open|use|load|recall|pull up|bring up|go back to|switch to) (?:the |my )?[\"']?(.+?)[\"']? {DOCUMENT_KIND}\s*[?.!]*$",
)

DOCUMENT_QNA_PHRASES: tuple[str, ...] = (
    "summarize this document",
    "summarize the document",
    "summarise the document",
    "summarize this",
    "summarise this",
    "summarize it",
    "summarise it",
    "what does this say",
    "what does the document say",
    "what does the pdf say",
    "what's in this document",
    "whats in this document",
    "what's in this doc",
    "whats in this doc",
    "what's in the document",
    "key points",
    "key takeaways",
    "main points",
    "give me a summary",
    "action items in",
    "action items from",
    "tl;dr",
    "tldr",
)

DOCUMENT_QNA_PATTERNS = _compile(
    r"\bwhat does (?:it|this|that|the (?:document|doc|pdf|file)) say about (.+)",
)

# ---------------------------------------------------------------------------
# Web search
# ---------------------------------------------------------------------------

WEB_SEARCH_PHRASES: tuple[str, ...] = (
    "search the web",
    "search the internet",
    "search online",
    "look it up online",
    "look up online",
    "google it",
    "web search",
)

# Capture group 1 is the query.
WEB_SEARCH_QUERY_PATTERNS = _compile(
    r"\b(?:search|look up|check) (?:the web|the internet|online|on the web|on google) (?:for |about )?(.+)",
    r"\bgoogle (?:for )?(.+)",
    r"\bweb search (?:for )?(.+)",
)

# ---------------------------------------------------------------------------
# Ordered routing table (cancel is checked separately, ahead of this table)
# ---------------------------------------------------------------------------

ROUTE_TABLE: tuple[PhraseGroup, ...] = (
    PhraseGroup("briefing", RouteDecision(RouteType.daily_briefing), phrases=BRIEFING_PHRASES),
    PhraseGroup(
        "tasks_show_all",
        RouteDecision(RouteType.tasks, action="read_all", show_all=True),
        phrases=TASKS_SHOW_ALL_PHRASES,
        co_occurring=(("show all", "task"), ("all pending", "task")),
    ),
    PhraseGroup(
        "tasks_show_rest",
        RouteDecision(RouteType.tasks, action="read", show_rest=True),
        phrases=TASKS_SHOW_REST_PHRASES,
        patterns=TASKS_SHOW_REST_PATTERNS,
    ),
    PhraseGroup(
        "tasks_initial",
        RouteDecision(RouteType.tasks, action="read"),
        phrases=TASKS_INITIAL_PHRASES,
        co_occurring=(("what tasks", "pending"),),
    ),
    PhraseGroup(
        "calendar_create",
        RouteDecision(RouteType.calendar_create),
        phrases=CALENDAR_CREATE_PHRASES,
        patterns=CALENDAR_CREATE_PATTERNS,
    ),
    PhraseGroup(
        "calendar_update",
        RouteDecision(RouteType.calendar_update),
        phrases=CALENDAR_UPDATE_PHRASES,
    ),
    PhraseGroup(
        "calendar_delete",
        RouteDecision(RouteType.calendar_delete),
        phrases=CALENDAR_DELETE_PHRASES,
        patterns=CALENDAR_DELETE_PATTERNS,
    ),
    PhraseGroup("calendar_read", RouteDecision(RouteType.calendar_read), phrases=CALENDAR_READ_PHRASES),
    PhraseGroup(
        "gmail_check",
        RouteDecision(RouteType.gmail_check),
        phrases=GMAIL_CHECK_PHRASES,
        patterns=GMAIL_CHECK_PATTERNS,
    ),
    PhraseGroup("gmail_search", RouteDecision(RouteType.gmail_search), phrases=GMAIL_SEARCH_PHRASES),
    PhraseGroup(
        "gmail_mark_read", RouteDecision(RouteType.gmail_mark_read), phrases=GMAIL_MARK_READ_PHRASES
    ),
    PhraseGroup(
        "reminder_create",
        RouteDecision(RouteType.reminder_create),
        phrases=REMINDER_CREATE_PHRASES,
        patterns=REMINDER_CREATE_PATTERNS,
    ),
    PhraseGroup(
        "reminder_snooze", RouteDecision(RouteType.reminder_snooze), phrases=REMINDER_SNOOZE_PHRASES
    ),
    PhraseGroup("contact_lookup", RouteDecision(RouteType.contact_lookup), patterns=CONTACT_PATTERNS),
    PhraseGroup("drive_search", RouteDecision(RouteType.drive_search), phrases=DRIVE_PHRASES),
    PhraseGroup("document_list", RouteDecision(RouteType.document_list), phrases=DOCUMENT_LIST_PHRASES),
    PhraseGroup(
        "document_recall", RouteDecision(RouteType.document_recall), patterns=DOCUMENT_RECALL_PATTERNS
    ),
    PhraseGroup(
        "document_qna",
        RouteDecision(RouteType.document_qna),
        phrases=DOCUMENT_QNA_PHRASES,
        patterns=DOCUMENT_QNA_PATTERNS,
    ),
    PhraseGroup("web_search", RouteDecision(RouteType.web_search), phrases=WEB_SEARCH_PHRASES),
)
