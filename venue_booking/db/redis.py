# venue_booking/db/redis.py
import redis
import redis.asyncio as aioredis

from venue_booking.core.config import settings


def get_redis_client() -> redis.Redis:
    """Sync client used by request handlers to publish realtime events."""
    return redis.from_url(settings.REDIS_URL, decode_responses=True)


def get_async_redis_client() -> aioredis.Redis:
    """Async client for long-lived pub/sub subscriptions (SSE relay)."""
    return aioredis.from_url(settings.REDIS_URL, decode_responses=True)


# redis.from_url is lazy, nothing connects until the first command
redis_client = get_redis_client()
