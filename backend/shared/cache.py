"""
Redis client factory.

Redis holds state that must be shared across API instances: rate-limit
windows and, optionally, background job snapshots.
"""

import logging
from typing import Optional

from redis.asyncio import Redis

from .config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[Redis] = None


def get_redis_client() -> Optional[Redis]:
    """
    Get the shared async Redis client.

    Returns:
        A Redis client, or None when REDIS_URL is not configured
    """
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        if not settings.redis_url:
            return None
        _redis_client = Redis.from_url(settings.redis_url, decode_responses=True)

    return _redis_client


async def close_redis_client() -> None:
    """Close the shared client, if one was created."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("Redis client closed")
    _redis_client = None


def reset_redis_client() -> None:
    """Drop the cached client without closing it (tests)."""
    global _redis_client
    _redis_client = None
