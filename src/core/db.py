from redis.asyncio import Redis

from src.core.config import settings

# Session state, conversation window and per-user locks all live in Redis.
redis = Redis.from_url(settings.redis_url, decode_responses=True)
