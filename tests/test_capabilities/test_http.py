"""Tests for the HTTP capability adapter."""

import json
from datetime import datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from src.capabilities import SERVICES, HttpCapability, create_http_capabilities
from src.capabilities.base import CapabilityRegistry
from src.core.exceptions import CapabilityError, ErrorType
from src.core.schemas.action import Action, ActionType
from src.skills.calendar.handler import skill as calendar_skill


def _adapter(handler, service: str = "calendar") -> HttpCapability:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://capabilities.test")
    return HttpCapability(service, client=client)


async def test_posts_action_envelope():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": "📅 2 events today", "data": [{"id": "e1"}]})

    start = datetime(2025, 11, 3, 15, 0, tzinfo=ZoneInfo("Asia/Kolkata"))
    result = await _adapter(handler).call("list_events", "user-1", {"time_min": start})

    assert seen["path"] == "/calendar"
    assert seen["body"] == {
        "action": "list_events",
        "userId": "user-1",
        "entities": {"time_min": "2025-11-03T15:00:00+05:30"},
    }
    assert result.message == "📅 2 events today"
    assert result.data == [{"id": "e1"}]


async def test_error_code_in_body_keeps_type():
    def handler(request):
        return httpx.Response(200, json={"error": "OAUTH_NOT_CONNECTED", "message": "connect google"})

    with pytest.raises(CapabilityError) as exc:
        await _adapter(handler, "gmail").call("summarize_inbox", "user-1", {})

    assert exc.value.error_type == ErrorType.OAUTH_NOT_CONNECTED
    assert exc.value.service == "gmail"
    assert exc.value.detail == "connect google"


@pytest.mark.parametrize(
    "status,expected",
    [
        (401, ErrorType.OAUTH_EXPIRED),
        (403, ErrorType.OAUTH_EXPIRED),
        (404, ErrorType.NOT_FOUND),
        (429, ErrorType.RATE_LIMIT),
        (502, ErrorType.API_ERROR),
    ],
)
async def test_http_status_mapping(status, expected):
    def handler(request):
        return httpx.Response(status, text="upstream said no")

    with pytest.raises(CapabilityError) as exc:
        await _adapter(handler).call("list_events", "user-1", {})

    assert exc.value.error_type == expected
    assert exc.value.status_code == status


async def test_unknown_error_code_is_api_error():
    def handler(request):
        return httpx.Response(200, json={"error": "quota_exceeded"})

    with pytest.raises(CapabilityError) as exc:
        await _adapter(handler, "drive").call("search", "user-1", {"query": "nda"})

    assert exc.value.error_type == ErrorType.API_ERROR
    assert exc.value.detail == "quota_exceeded"


async def test_timeout_maps_to_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(CapabilityError) as exc:
        await _adapter(handler).call("list_events", "user-1", {})

    assert exc.value.error_type == ErrorType.TIMEOUT


async def test_transport_error_maps_to_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CapabilityError) as exc:
        await _adapter(handler).call("list_events", "user-1", {})

    assert exc.value.error_type == ErrorType.API_ERROR


async def test_plain_text_body_becomes_message():
    def handler(request):
        return httpx.Response(200, text="✅ Done")

    result = await _adapter(handler, "tasks").call("complete_task", "user-1", {"task_id": "t1"})

    assert result.message == "✅ Done"
    assert result.data is None


async def test_close_releases_client():
    adapter = _adapter(lambda request: httpx.Response(200, json={}))
    await adapter.close()
    assert adapter._client is None


def test_registry_covers_every_service():
    registry = create_http_capabilities()
    assert registry.services() == sorted(SERVICES)
    assert isinstance(registry.get("gmail"), HttpCapability)
    with pytest.raises(KeyError):
        registry.get("fax")


async def test_null_message_is_empty():
    def handler(request):
        return httpx.Response(200, json={"message": None, "data": [{"id": "e1", "title": "Standup"}]})

    result = await _adapter(handler).call("list_events", "user-1", {})

    assert result.message == ""
    assert result.data == [{"id": "e1", "title": "Standup"}]


async def test_skill_formats_data_when_message_is_null(ctx):
    def handler(request):
        return httpx.Response(
            200,
            json={"message": None, "data": [{"id": "e1", "title": "Standup", "start": "2025-11-03T10:00:00+05:30"}]},
        )

    registry = CapabilityRegistry()
    registry.register(_adapter(handler))
    result = await calendar_skill.execute(Action(ActionType.calendar_read, {"label": "today"}), ctx, registry)

    assert result.response_text.startswith("📅 Your events today:")
    assert "Standup" in result.response_text
    assert "None" not in result.response_text
