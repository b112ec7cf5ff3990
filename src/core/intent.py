"""Intent classification for messages the phrase router could not place.

The reasoning backend (Gemini primary, Claude fallback) proposes a coarse
intent. Its answer is never trusted as-is: ``enforce_classification_rules``
re-applies the selection rules deterministically on every result.
"""

import asyncio
import json
import logging
import re
from typing import Any

from src.core.config import settings
from src.core.exceptions import ClassifierError
from src.core.llm.clients import get_instructor_anthropic, google_client
from src.core.observability import observe
from src.core.schemas.intent import IntentClassification, IntentType
from src.core.session import SessionState
from src.skills.confirmation import is_no, is_yes

logger = logging.getLogger(__name__)

# Substring checks on the lowercased message. The classifier prompt states
# the same rule; the check here runs regardless of what the backend said.
EMAIL_ACTION_PHRASES: tuple[str, ...] = (
    "email ",
    "mail ",
    "send an email",
    "send a email",
    "write an email",
    "write a email",
    "draft an email",
    "draft a email",
    "message him",
    "message her",
    "message them",
    "tell him",
    "tell her",
    "tell them",
    "inform him",
    "inform her",
    "inform them",
    "ping him",
    "ping her",
    "ping them",
    "reply to",
    "respond to",
)

GREETING_RE = re.compile(
    r"^(?:hi+|hello+|hey+|hiya|yo|hola|namaste|good (?:morning|afternoon|evening)"
    r"|who are you|what can you do|what are you|help)(?:\s+there)?(?:\s+man friday)?[\s!.?]*$"
)

LOW_CONFIDENCE = 0.2
EMAIL_OVERRIDE_CONFIDENCE = 0.95

INTENT_CLASSIFICATION_PROMPT = """\
You classify one WhatsApp message sent to an executive assistant.

Pick exactly one intent_type:
- confirmation_yes: the user agrees to the pending action. ONLY if a confirmation is pending.
- confirmation_no: the user declines the pending action. ONLY if a confirmation is pending.
- doc_action: a question or instruction about the last uploaded document \
("summarize this", "what does it say about pricing"). ONLY if a document is loaded.
- simple_reminder: a plain "remind me to X at Y" request.
- greeting_smalltalk: greetings, thanks, "who are you", small talk.
- email_action: the user wants an email written, sent or replied to \
("email Rohan", "tell him the deck is ready", "reply to Priya").
- handoff_to_orchestrator: anything else.

Rules:
- Email verbs ALWAYS win over doc_action, even when a document is loaded and \
the message says "this" or "the document".
- Greetings are never confirmations.
- When unsure, use handoff_to_orchestrator with low confidence.

Session:
- confirmation pending: {confirmation}
- last document: {last_doc}

Respond ONLY with JSON:
{{"intent_type": "...", "confidence": 0.0-1.0, "reason": "short reason"}}"""


def has_email_verb(message: str) -> bool:
    msg = message.lower()
    return any(phrase in msg for phrase in EMAIL_ACTION_PHRASES)


def is_greeting(message: str) -> bool:
    return bool(GREETING_RE.match(message.lower().strip()))


def enforce_classification_rules(
    result: IntentClassification,
    message: str,
    state: SessionState,
) -> IntentClassification:
    """Apply the selection contract to whatever the backend returned."""
    if has_email_verb(message):
        if result.intent_type == IntentType.email_action:
            return result
        return IntentClassification(
            intent_type=IntentType.email_action,
            confidence=max(result.confidence, EMAIL_OVERRIDE_CONFIDENCE),
            reason=f"email verb override (backend said {result.intent_type})",
        )

    if result.intent_type in (IntentType.confirmation_yes, IntentType.confirmation_no):
        if is_greeting(message):
            return IntentClassification(
                intent_type=IntentType.greeting_smalltalk,
                confidence=result.confidence,
                reason="greeting is never a confirmation",
            )
        if state.confirmation_pending is None:
            return IntentClassification(
                intent_type=IntentType.handoff_to_orchestrator,
                confidence=LOW_CONFIDENCE,
                reason="confirmation without a pending action",
            )

    if result.intent_type == IntentType.doc_action and state.last_doc is None:
        return IntentClassification(
            intent_type=IntentType.handoff_to_orchestrator,
            confidence=LOW_CONFIDENCE,
            reason="doc_action without a loaded document",
        )

    return result


def quick_classify(message: str, state: SessionState) -> IntentClassification | None:
    """Deterministic answers that need no backend call."""
    if has_email_verb(message):
        return IntentClassification(
            intent_type=IntentType.email_action,
            confidence=EMAIL_OVERRIDE_CONFIDENCE,
            reason="email verb",
        )
    if is_greeting(message):
        return IntentClassification(
            intent_type=IntentType.greeting_smalltalk, confidence=0.95, reason="greeting"
        )
    if state.confirmation_pending is not None:
        if is_yes(message):
            return IntentClassification(
                intent_type=IntentType.confirmation_yes, confidence=0.95, reason="yes keyword"
            )
        if is_no(message):
            return IntentClassification(
                intent_type=IntentType.confirmation_no, confidence=0.95, reason="no keyword"
            )
    return None


def _context_prompt(
    message: str,
    recent_turns: list[dict[str, Any]],
    state: SessionState,
) -> tuple[str, str]:
    confirmation = "none"
    if state.confirmation_pending is not None:
        confirmation = state.confirmation_pending.summary or state.confirmation_pending.action
    last_doc = state.last_doc.title if state.last_doc else "none"

    system_prompt = INTENT_CLASSIFICATION_PROMPT.format(confirmation=confirmation, last_doc=last_doc)
    history = "\n".join(f"{t.get('role', 'user')}: {t.get('content', '')}" for t in recent_turns[-6:])
    user_prompt = f"Recent conversation:\n{history}\n\nMessage: {message}" if history else f"Message: {message}"
    return system_prompt, user_prompt


@observe(name="classify_intent")
async def classify(
    message: str,
    recent_turns: list[dict[str, Any]],
    state: SessionState,
) -> IntentClassification:
    """Classify a message into one coarse intent.

    Gemini Flash first, Claude Haiku as fallback. Timeouts, malformed output
    and backend errors all end in ``handoff_to_orchestrator`` with low
    confidence. The result always passes through
    ``enforce_classification_rules``.
    """
    quick = quick_classify(message, state)
    if quick is not None:
        return enforce_classification_rules(quick, message, state)

    system_prompt, user_prompt = _context_prompt(message, recent_turns, state)
    timeout = settings.classifier_timeout_seconds

    result: IntentClassification | None = None
    try:
        result = await asyncio.wait_for(_classify_with_gemini(system_prompt, user_prompt), timeout)
    except ClassifierError as e:
        logger.warning("%s, falling back to Claude", e)
    except Exception as e:
        logger.warning("Gemini intent classification failed: %s, falling back to Claude", e)

    if result is None:
        try:
            result = await asyncio.wait_for(_classify_with_claude(system_prompt, user_prompt), timeout)
        except Exception as e:
            logger.error("Claude intent classification also failed: %s", e)
            result = IntentClassification(
                intent_type=IntentType.handoff_to_orchestrator,
                confidence=LOW_CONFIDENCE,
                reason="classifier unavailable",
            )

    return enforce_classification_rules(result, message, state)


@observe(name="intent_gemini")
async def _classify_with_gemini(system_prompt: str, user_prompt: str) -> IntentClassification:
    client = google_client()
    response = await client.aio.models.generate_content(
        model=settings.classifier_model,
        contents=f"{system_prompt}\n\n{user_prompt}",
        config={"response_mime_type": "application/json"},
    )
    try:
        return IntentClassification(**json.loads(response.text))
    except (TypeError, ValueError) as e:
        raise ClassifierError(f"Malformed Gemini classification: {response.text!r}") from e


@observe(name="intent_claude")
async def _classify_with_claude(system_prompt: str, user_prompt: str) -> IntentClassification:
    client = get_instructor_anthropic()
    result = await client.messages.create(
        model=settings.classifier_fallback_model,
        max_tokens=256,
        response_model=IntentClassification,
        max_retries=2,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    return result
