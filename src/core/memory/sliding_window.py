"""Sliding window: the last N conversation turns per user in Redis."""

import json
import logging

from src.core.config import settings
from src.core.db import redis

logger = logging.getLogger(__name__)

REDIS_KEY_PREFIX = "conv"
TTL_SECONDS = 86400  # 24 hours


def _key(user_id: str) -> str:
    return f"{REDIS_KEY_PREFIX}:{user_id}:messages"


async def add_message(
    user_id: str,
    role: str,
    content: str,
    route: str | None = None,
) -> None:
    """Append one turn and trim the window."""
    key = _key(user_id)
    message = json.dumps(
        {
            "role": role,
            "content": content,
            "route": route,
        },
        ensure_ascii=False,
    )

    await redis.rpush(key, message)
    await redis.ltrim(key, -settings.history_window, -1)
    await redis.expire(key, TTL_SECONDS)


async def get_recent_messages(
    user_id: str,
    limit: int | None = None,
) -> list[dict]:
    """Recent turns, oldest first."""
    raw_messages = await redis.lrange(_key(user_id), -(limit or settings.history_window), -1)
    messages = []
    for raw in raw_messages:
        try:
            messages.append(json.loads(raw))
        except json.JSONDecodeError:
            logger.warning("Skipping corrupt history entry for user %s", user_id)
    return messages


async def clear_messages(user_id: str) -> None:
    await redis.delete(_key(user_id))
