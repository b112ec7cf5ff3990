"""Tests for intent classification and the deterministic selection rules."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from src.core.exceptions import ClassifierError
from src.core.intent import (
    _classify_with_gemini,
    classify,
    enforce_classification_rules,
    has_email_verb,
    is_greeting,
    quick_classify,
)
from src.core.schemas.intent import IntentClassification, IntentType
from src.core.session import ConfirmationPending, LastDocument, SessionState
from tests.conftest import NOW


def _result(intent: IntentType, confidence: float = 0.9) -> IntentClassification:
    return IntentClassification(intent_type=intent, confidence=confidence, reason="backend")


@pytest.fixture
def pending_state():
    return SessionState(
        user_id="user-1",
        confirmation_pending=ConfirmationPending(
            action="email_send", params={"to": "rohan@acme.com"}, summary="Send email to Rohan?", asked_at=NOW
        ),
    )


@pytest.fixture
def doc_state():
    return SessionState(
        user_id="user-1",
        last_doc=LastDocument(id="doc-1", title="Q3 report.pdf", uploaded_at=NOW),
    )


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def test_classification_rejects_out_of_range_confidence():
    with pytest.raises(ValidationError):
        IntentClassification(intent_type=IntentType.doc_action, confidence=1.5)


def test_classification_rejects_unknown_intent():
    with pytest.raises(ValidationError):
        IntentClassification(intent_type="add_expense", confidence=0.5)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "message",
    [
        "Email Rohan and tell him the document is approved",
        "send an email to Priya about the offsite",
        "reply to the vendor saying we accept",
        "ping them about the invoice",
    ],
)
def test_has_email_verb(message):
    assert has_email_verb(message)


@pytest.mark.parametrize("message", ["summarize this document", "what's on my calendar", "emails"])
def test_has_no_email_verb(message):
    assert not has_email_verb(message)


@pytest.mark.parametrize("message", ["hi", "Hello!", "hey there", "good morning", "who are you?"])
def test_is_greeting(message):
    assert is_greeting(message)


def test_greeting_must_be_whole_message():
    assert not is_greeting("hi, move my 3pm to 4pm")


# ---------------------------------------------------------------------------
# enforce_classification_rules
# ---------------------------------------------------------------------------


def test_email_verb_beats_doc_action(doc_state):
    """Email verbs win even with a loaded document and "the document" in the text."""
    result = enforce_classification_rules(
        _result(IntentType.doc_action),
        "Email Rohan and tell him the document is approved",
        doc_state,
    )
    assert result.intent_type == IntentType.email_action
    assert result.confidence >= 0.95


def test_email_action_kept_as_is(state):
    original = _result(IntentType.email_action, 0.7)
    assert enforce_classification_rules(original, "email Rohan", state) is original


def test_yes_without_pending_confirmation_is_handoff(state):
    result = enforce_classification_rules(_result(IntentType.confirmation_yes), "yes", state)
    assert result.intent_type == IntentType.handoff_to_orchestrator
    assert result.confidence < 0.5


def test_no_without_pending_confirmation_is_handoff(state):
    result = enforce_classification_rules(_result(IntentType.confirmation_no), "no", state)
    assert result.intent_type == IntentType.handoff_to_orchestrator


def test_greeting_is_never_a_confirmation(pending_state):
    result = enforce_classification_rules(_result(IntentType.confirmation_yes), "hello", pending_state)
    assert result.intent_type == IntentType.greeting_smalltalk


def test_yes_with_pending_confirmation_is_kept(pending_state):
    result = enforce_classification_rules(_result(IntentType.confirmation_yes), "sure thing", pending_state)
    assert result.intent_type == IntentType.confirmation_yes


def test_doc_action_without_document_is_handoff(state):
    result = enforce_classification_rules(_result(IntentType.doc_action), "summarize it", state)
    assert result.intent_type == IntentType.handoff_to_orchestrator


def test_doc_action_with_document_is_kept(doc_state):
    result = enforce_classification_rules(_result(IntentType.doc_action), "summarize it", doc_state)
    assert result.intent_type == IntentType.doc_action


# ---------------------------------------------------------------------------
# quick_classify
# ---------------------------------------------------------------------------


def test_quick_classify_yes_only_with_pending(state, pending_state):
    assert quick_classify("yes", state) is None
    assert quick_classify("Yes!", pending_state).intent_type == IntentType.confirmation_yes
    assert quick_classify("nope", pending_state).intent_type == IntentType.confirmation_no


def test_quick_classify_greeting(pending_state):
    assert quick_classify("hi", pending_state).intent_type == IntentType.greeting_smalltalk


def test_quick_classify_leaves_open_questions_to_backend(state):
    assert quick_classify("what should I focus on today", state) is None


# ---------------------------------------------------------------------------
# classify: backend chain
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_classify_uses_gemini_first(state):
    gemini = AsyncMock(return_value=_result(IntentType.simple_reminder))
    claude = AsyncMock()
    with (
        patch("src.core.intent._classify_with_gemini", gemini),
        patch("src.core.intent._classify_with_claude", claude),
    ):
        result = await classify("nudge me about the rent on the 1st", [], state)

    assert result.intent_type == IntentType.simple_reminder
    gemini.assert_awaited_once()
    claude.assert_not_awaited()


@pytest.mark.asyncio
async def test_classify_falls_back_to_claude(state):
    gemini = AsyncMock(side_effect=RuntimeError("quota"))
    claude = AsyncMock(return_value=_result(IntentType.handoff_to_orchestrator, 0.6))
    with (
        patch("src.core.intent._classify_with_gemini", gemini),
        patch("src.core.intent._classify_with_claude", claude),
    ):
        result = await classify("plan my week", [], state)

    assert result.intent_type == IntentType.handoff_to_orchestrator
    assert result.confidence == 0.6
    claude.assert_awaited_once()


@pytest.mark.asyncio
async def test_classify_both_backends_fail_is_low_confidence_handoff(state):
    with (
        patch("src.core.intent._classify_with_gemini", AsyncMock(side_effect=asyncio.TimeoutError())),
        patch("src.core.intent._classify_with_claude", AsyncMock(side_effect=ValueError("bad json"))),
    ):
        result = await classify("plan my week", [], state)

    assert result.intent_type == IntentType.handoff_to_orchestrator
    assert result.confidence < 0.5


@pytest.mark.asyncio
async def test_classify_enforces_rules_on_backend_answer(state):
    """Backend says yes, but nothing is pending."""
    with patch(
        "src.core.intent._classify_with_gemini",
        AsyncMock(return_value=_result(IntentType.confirmation_yes)),
    ):
        result = await classify("sounds great to me", [], state)

    assert result.intent_type == IntentType.handoff_to_orchestrator


@pytest.mark.asyncio
async def test_classify_email_verb_skips_backend(doc_state):
    gemini = AsyncMock()
    with patch("src.core.intent._classify_with_gemini", gemini):
        result = await classify("Email Rohan and tell him the document is approved", [], doc_state)

    assert result.intent_type == IntentType.email_action
    gemini.assert_not_awaited()


@pytest.mark.asyncio
async def test_classify_passes_history_into_prompt(state):
    gemini = AsyncMock(return_value=_result(IntentType.handoff_to_orchestrator))
    history = [
        {"role": "user", "content": "what's on tomorrow"},
        {"role": "assistant", "content": "Two meetings."},
    ]
    with patch("src.core.intent._classify_with_gemini", gemini):
        await classify("and the day after?", history, state)

    _, user_prompt = gemini.await_args.args
    assert "what's on tomorrow" in user_prompt
    assert "Message: and the day after?" in user_prompt


def _gemini_returning(text):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=text))
    return client


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["not json", '{"intent_type": "order_pizza", "confidence": 0.9}', None])
async def test_gemini_malformed_output_is_classifier_error(text):
    with patch("src.core.intent.google_client", return_value=_gemini_returning(text)):
        with pytest.raises(ClassifierError):
            await _classify_with_gemini("system", "Message: hi")


@pytest.mark.asyncio
async def test_classify_malformed_gemini_output_falls_back_to_claude(state):
    claude = AsyncMock(return_value=_result(IntentType.simple_reminder))
    with (
        patch("src.core.intent.google_client", return_value=_gemini_returning("{oops")),
        patch("src.core.intent._classify_with_claude", claude),
    ):
        result = await classify("nudge me about the rent on the 1st", [], state)

    assert result.intent_type == IntentType.simple_reminder
    claude.assert_awaited_once()
