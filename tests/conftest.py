"""Test fixtures for the WhatsApp assistant core."""

import os
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

# Set test environment before importing app modules
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("APP_ENV", "testing")
os.environ["LANGFUSE_PUBLIC_KEY"] = ""

from src.capabilities.base import SERVICES, CapabilityRegistry, CapabilityResult
from src.core.context import SessionContext
from src.core.schemas.intent import IntentClassification, IntentType
from src.core.session import SessionState
from src.gateway.mock import MockGateway
from src.gateway.types import IncomingMessage, MessageType
from src.skills.base import SkillResult

TZ = ZoneInfo("Asia/Kolkata")

# Monday 3 Nov 2025, 10:00 local
NOW = datetime(2025, 11, 3, 10, 0, tzinfo=TZ)


class FakeCapability:
    """Records calls; answers with canned results or raises canned errors."""

    def __init__(self, service: str):
        self.service = service
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.responses: dict[str, CapabilityResult | Exception] = {}

    def respond(self, action: str, message: str = "", data: Any = None) -> None:
        self.responses[action] = CapabilityResult(message=message, data=data)

    def fail(self, action: str, error: Exception) -> None:
        self.responses[action] = error

    async def call(self, action: str, user_id: str, entities: dict[str, Any]) -> CapabilityResult:
        self.calls.append((action, entities))
        response = self.responses.get(action)
        if isinstance(response, Exception):
            raise response
        return response or CapabilityResult()

    def calls_to(self, action: str) -> list[dict[str, Any]]:
        return [entities for name, entities in self.calls if name == action]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def state():
    return SessionState(user_id="user-1")


@pytest.fixture
def capabilities():
    """Capability registry with a FakeCapability for every service."""
    registry = CapabilityRegistry()
    for service in SERVICES:
        registry.register(FakeCapability(service))
    return registry


@pytest.fixture
def make_ctx(state, now):
    """Build a SessionContext, optionally with a different state."""

    def _make(session_state: SessionState | None = None, text: str = "", **kwargs) -> SessionContext:
        return SessionContext(
            user_id="user-1",
            state=session_state or state,
            now=kwargs.pop("at", now),
            message_text=text,
            **kwargs,
        )

    return _make


@pytest.fixture
def ctx(make_ctx):
    return make_ctx()


@pytest.fixture
def skill_registry():
    """Populated skill registry."""
    from src.skills import create_registry

    return create_registry()


@pytest.fixture
def classifier():
    """Classifier stub; defaults to handoff."""
    return AsyncMock(
        return_value=IntentClassification(
            intent_type=IntentType.handoff_to_orchestrator, confidence=0.5, reason="test"
        )
    )


@pytest.fixture
def orchestrator():
    stub = AsyncMock()
    stub.run = AsyncMock(return_value=SkillResult("orchestrator reply"))
    return stub


@pytest.fixture
def processor(skill_registry, capabilities, classifier, orchestrator):
    from src.core.router import MessageProcessor

    return MessageProcessor(
        skill_registry,
        capabilities,
        classifier=classifier,
        orchestrator=orchestrator,
    )


@pytest.fixture
def mock_gateway():
    """Mock gateway for testing."""
    return MockGateway()


@pytest.fixture
def text_message():
    """Sample text incoming message."""
    return IncomingMessage(
        id="wamid.1",
        user_id="919800000001",
        chat_id="919800000001",
        type=MessageType.text,
        text="show my tasks",
    )


@pytest.fixture
def document_message():
    """Sample document incoming message."""
    return IncomingMessage(
        id="wamid.2",
        user_id="919800000001",
        chat_id="919800000001",
        type=MessageType.document,
        document_id="media-77",
        document_mime_type="application/pdf",
        document_file_name="Q3 report.pdf",
    )
