"""Tests for the Redis-backed conversation window."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.memory import sliding_window


@pytest.fixture
def fake_redis():
    client = MagicMock()
    for name in ("rpush", "ltrim", "expire", "lrange", "delete"):
        setattr(client, name, AsyncMock())
    with patch.object(sliding_window, "redis", client):
        yield client


async def test_add_message_appends_and_trims(fake_redis):
    await sliding_window.add_message("u1", "user", "show my tasks", "tasks")

    key, raw = fake_redis.rpush.await_args.args
    assert key == "conv:u1:messages"
    assert json.loads(raw) == {"role": "user", "content": "show my tasks", "route": "tasks"}
    fake_redis.ltrim.assert_awaited_once_with("conv:u1:messages", -10, -1)
    fake_redis.expire.assert_awaited_once_with("conv:u1:messages", sliding_window.TTL_SECONDS)


async def test_recent_messages_skip_corrupt_entries(fake_redis):
    fake_redis.lrange.return_value = [
        json.dumps({"role": "user", "content": "hi", "route": None}),
        "{not json",
        json.dumps({"role": "assistant", "content": "Hello!", "route": None}),
    ]

    messages = await sliding_window.get_recent_messages("u1", limit=3)

    assert [m["content"] for m in messages] == ["hi", "Hello!"]
    fake_redis.lrange.assert_awaited_once_with("conv:u1:messages", -3, -1)


async def test_clear_messages(fake_redis):
    await sliding_window.clear_messages("u1")
    fake_redis.delete.assert_awaited_once_with("conv:u1:messages")
