"""
Sliding-window stores.

A window is a set of admission timestamps per key. Each hit purges the
timestamps at or before ``now - window``, counts what is left, and records
a new timestamp only when the count is under the ceiling.
"""

import asyncio
import logging
import uuid
from collections import deque
from typing import Protocol, runtime_checkable

from redis.asyncio import Redis

from .models import WindowHit

logger = logging.getLogger(__name__)


@runtime_checkable
class IWindowStore(Protocol):
    """Contract for rate-limit window storage."""

    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        """Purge, count and (if under ``limit``) record in one atomic step."""
        ...


class InMemoryWindowStore:
    """
    Per-process windows.

    Correct for a single API instance only; horizontally scaled
    deployments need the Redis store so instances share one window.
    Keys idle for longer than the longest window seen are dropped on an
    amortised sweep, at most once per that window length.
    """

    def __init__(self) -> None:
        self._windows: dict[str, deque[int]] = {}
        self._lock = asyncio.Lock()
        self._longest_window_ms = 0
        self._last_sweep_ms = 0

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now_ms: int) -> None:
        cutoff = now_ms - self._longest_window_ms
        idle = [key for key, window in self._windows.items() if not window or window[-1] <= cutoff]
        for key in idle:
            del self._windows[key]
        self._last_sweep_ms = now_ms
        if idle:
            logger.debug(f"Dropped {len(idle)} idle rate limit windows")

    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        async with self._lock:
            self._longest_window_ms = max(self._longest_window_ms, window_ms)
            if now_ms - self._last_sweep_ms >= self._longest_window_ms:
                self._sweep(now_ms)

            window = self._windows.setdefault(key, deque())
            cutoff = now_ms - window_ms
            while window and window[0] <= cutoff:
                window.popleft()

            count = len(window)
            oldest = window[0] if window else None
            if count >= limit:
                if not window:
                    del self._windows[key]
                return WindowHit(admitted=False, count=count, oldest_ms=oldest)

            window.append(now_ms)
            return WindowHit(
                admitted=True,
                count=count,
                oldest_ms=oldest if oldest is not None else now_ms,
            )

    def clear(self) -> None:
        self._windows.clear()


_SLIDING_WINDOW_LUA = r"""
local key = KEYS[1]
local now_ms = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local member = ARGV[4]

redis.call("ZREMRANGEBYSCORE", key, 0, now_ms - window_ms)
local count = redis.call("ZCARD", key)

local oldest = redis.call("ZRANGE", key, 0, 0, "WITHSCORES")
local oldest_ms = -1
if oldest[2] then
  oldest_ms = tonumber(oldest[2])
end

if count >= limit then
  return {0, count, oldest_ms}
end

redis.call("ZADD", key, now_ms, member)
redis.call("PEXPIRE", key, window_ms)
if oldest_ms < 0 then
  oldest_ms = now_ms
end
return {1, count, oldest_ms}
"""


class RedisWindowStore:
    """
    Windows shared across instances, one sorted set per key.

    The whole purge/count/add/expire sequence runs as a Lua script so two
    instances can never both take the last slot.
    """

    def __init__(self, redis: Redis, prefix: str = "salesdesk") -> None:
        self._redis = redis
        self._prefix = prefix
        self._script = redis.register_script(_SLIDING_WINDOW_LUA)

    async def hit(self, key: str, now_ms: int, window_ms: int, limit: int) -> WindowHit:
        # Members must be unique even for hits in the same millisecond
        member = f"{now_ms}-{uuid.uuid4().hex[:8]}"
        result = await self._script(
            keys=[f"{self._prefix}:{key}"],
            args=[now_ms, window_ms, limit, member],
        )
        admitted, count, oldest_ms = (int(v) for v in result)
        return WindowHit(
            admitted=admitted == 1,
            count=count,
            oldest_ms=oldest_ms if oldest_ms >= 0 else None,
        )
