"""Redis-backed sliding window rate limiter."""

from __future__ import annotations

import math
import time
from typing import Final

from redis import Redis
from redis.exceptions import ResponseError

from .rate_limiter import RateLimitDecision


class RedisSlidingWindowRateLimiter:
    """Distributed sliding window limiter implemented with Redis sorted sets."""

    # Returns {allowed, count in window, ms until the oldest entry expires}.
    _LUA_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local counter_key = key .. ':seq'
    local window_ms = tonumber(ARGV[1])
    local max_requests = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])

    redis.call('ZREMRANGEBYSCORE', key, 0, now_ms - window_ms)
    local current = redis.call('ZCARD', key)
    local allowed = 0
    if current < max_requests then
        local seq = redis.call('INCR', counter_key)
        redis.call('PEXPIRE', counter_key, window_ms)
        local member = tostring(now_ms) .. ':' .. tostring(seq)
        redis.call('ZADD', key, now_ms, member)
        redis.call('PEXPIRE', key, window_ms)
        current = current + 1
        allowed = 1
    end
    local reset_ms = window_ms
    local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
    if oldest[2] then
        reset_ms = tonumber(oldest[2]) + window_ms - now_ms
    end
    return {allowed, current, reset_ms}
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "rate"
    ) -> None:
        """Initialise the Redis client, window configuration, and Lua script cache."""
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._script = client.register_script(self._LUA_SCRIPT)

    def hit(self, key: str) -> RateLimitDecision:
        """Count a request for ``key`` against the shared window and report the quota."""
        now_ms = int(time.time() * 1000)
        redis_key = f"{self._key_prefix}:{key}"
        try:
            allowed, current, reset_ms = self._script(
                keys=[redis_key], args=[self._window_ms, self._max_requests, now_ms]
            )
        except ResponseError as exc:
            message = str(exc).lower()
            if "unknown command `evalsha`" in message or "unknown command `eval`" in message:
                return self._hit_fallback(redis_key, now_ms)
            raise
        return self._decision(int(allowed) == 1, int(current), int(reset_ms))

    def allow(self, key: str) -> bool:
        """Return ``True`` when the key is still within the distributed rate limit."""
        return self.hit(key).allowed

    def _hit_fallback(self, redis_key: str, now_ms: int) -> RateLimitDecision:
        """Fallback pure-Python implementation used when Lua is unavailable."""
        window_start = now_ms - self._window_ms
        self._client.zremrangebyscore(redis_key, 0, window_start)
        current = self._client.zcard(redis_key)
        allowed = current < self._max_requests
        if allowed:
            seq = self._client.incr(f"{redis_key}:seq")
            self._client.pexpire(f"{redis_key}:seq", self._window_ms)
            member = f"{now_ms}:{seq}"
            self._client.zadd(redis_key, {member: now_ms})
            self._client.pexpire(redis_key, self._window_ms)
            current += 1
        reset_ms = self._window_ms
        oldest = self._client.zrange(redis_key, 0, 0, withscores=True)
        if oldest:
            reset_ms = int(oldest[0][1]) + self._window_ms - now_ms
        return self._decision(allowed, current, reset_ms)

    def _decision(self, allowed: bool, current: int, reset_ms: int) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self._max_requests,
            remaining=max(0, self._max_requests - current),
            reset_seconds=max(0, math.ceil(reset_ms / 1000)),
        )
