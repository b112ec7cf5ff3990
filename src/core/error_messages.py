"""User-facing error messages, one set per capability service."""

from dataclasses import dataclass

from src.core.exceptions import CapabilityError, ErrorType

GENERIC_APOLOGY = "❌ Sorry, something went wrong on my side. Please try again in a moment."
LOST_CONTEXT = "I don't have that context anymore. Could you repeat your request?"
CLASSIFIER_FALLBACK = "I'm not sure I understood that. Could you rephrase it?"


@dataclass(frozen=True)
class ServiceErrors:
    label: str
    oauth_not_connected: str
    oauth_expired: str
    not_found: str
    permission_denied: str

    def api_error(self, status_code: int | None) -> str:
        code = f" (error {status_code})" if status_code else ""
        return f"❌ I couldn't reach your {self.label} right now{code}. Please try again in a moment."


def _google(label: str, area: str, not_found: str) -> ServiceErrors:
    return ServiceErrors(
        label=label,
        oauth_not_connected=(
            f"⚠️ Your {area} isn't connected yet. "
            "Please connect your Google account in settings."
        ),
        oauth_expired=(
            f"⚠️ Your {area} connection has expired. "
            "Please reconnect your Google account in settings."
        ),
        not_found=not_found,
        permission_denied=(
            f"⚠️ I don't have permission to access your {area}. "
            "Please reconnect with the right permissions."
        ),
    )


SERVICE_ERRORS: dict[str, ServiceErrors] = {
    "calendar": _google(
        "calendar",
        "Google Calendar",
        "📅 I couldn't find any events matching your request.",
    ),
    "tasks": _google(
        "tasks",
        "Google Tasks",
        "❌ I couldn't find that task. Say \"show my tasks\" to see your list.",
    ),
    "gmail": _google("emails", "Gmail", "📧 I couldn't find any emails matching your search."),
    "contacts": _google(
        "contacts",
        "Google Contacts",
        "👤 I couldn't find anyone with that name in your contacts.",
    ),
    "drive": _google(
        "Google Drive",
        "Google Drive",
        "📁 I couldn't find any files matching your search in Google Drive.",
    ),
    "briefing": _google(
        "briefing sources",
        "Google account",
        "📋 No briefing data available right now.",
    ),
    "documents": _google(
        "documents",
        "document storage",
        "📄 I couldn't find that document. Please upload it again.",
    ),
    "reminders": _google(
        "reminders",
        "reminder service",
        "⏰ I couldn't find any active reminder.",
    ),
    "web_search": _google(
        "search provider",
        "search provider",
        "🔎 I couldn't find anything for that search.",
    ),
}

NO_DOCUMENT = (
    "📄 I don't see any recent document. Please upload the file (PDF, DOC, DOCX) "
    "or say \"open the pdf called <name>\" to load a previous one."
)
REMINDER_INVALID_TIME = (
    "⏰ I couldn't understand that time. Try something like \"remind me at 3pm\" "
    "or \"in 2 hours\"."
)
REMINDER_PAST_TIME = "⏰ That time has already passed. Please choose a future time."


def describe_capability_error(error: CapabilityError) -> str:
    """Map a capability failure to the message shown to the user."""
    errors = SERVICE_ERRORS.get(error.service)
    if errors is None:
        return GENERIC_APOLOGY

    if error.error_type == ErrorType.OAUTH_NOT_CONNECTED:
        return errors.oauth_not_connected
    if error.error_type == ErrorType.OAUTH_EXPIRED:
        return errors.oauth_expired
    if error.error_type == ErrorType.NOT_FOUND:
        return errors.not_found
    if error.error_type == ErrorType.PERMISSION:
        return errors.permission_denied
    if error.error_type in (ErrorType.API_ERROR, ErrorType.RATE_LIMIT, ErrorType.TIMEOUT):
        return errors.api_error(error.status_code)
    return GENERIC_APOLOGY
