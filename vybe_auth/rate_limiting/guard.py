import asyncio
import time
from dataclasses import dataclass
from typing import Optional
from redis.exceptions import NoScriptError, RedisError
from vybe_auth.auth.exceptions import RateLimited
from vybe_auth.rate_limiting.constants import logger
from vybe_auth.rate_limiting.lua_scripts import LUA_FIXED_WINDOW_INCR_AND_PEXPIRE

STORE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_ts: int

    @property
    def retry_after(self) -> int:
        return max(0, self.reset_ts - int(time.time()))


class RateGuard:
    """Fixed-window attempt counters kept in Redis.

    The window opens on the first attempt for a key and the counter resets when
    it expires. If Redis is unavailable the guard fails open (or closed, when
    configured) and logs; it never keeps counters in process memory.
    """

    def __init__(self, redis_client, *, fail_open: bool = True, timeout_seconds: float = 0.5):
        self._redis = redis_client
        self._fail_open = fail_open
        self._timeout = timeout_seconds
        self._script_sha: Optional[str] = None
        self._script_lock = asyncio.Lock()

    async def _ensure_lua_loaded(self) -> Optional[str]:
        """Load the Lua script into the Redis script cache once and keep its SHA."""
        if self._script_sha:
            return self._script_sha
        async with self._script_lock:
            if self._script_sha:
                return self._script_sha
            try:
                self._script_sha = await self._redis.script_load(LUA_FIXED_WINDOW_INCR_AND_PEXPIRE)
            except STORE_ERRORS:
                # fall back to EVAL (slower) in calls
                self._script_sha = None
            return self._script_sha

    async def _incr(self, key: str, window_ms: int):
        sha = await self._ensure_lua_loaded()
        if sha:
            try:
                return await self._redis.evalsha(sha, 1, key, window_ms)
            except NoScriptError:
                self._script_sha = None
        return await self._redis.eval(LUA_FIXED_WINDOW_INCR_AND_PEXPIRE, 1, key, window_ms)

    async def check(self, key: str, max_attempts: int, window_seconds: int) -> RateDecision:
        """Count one attempt against ``key`` and report whether it is within the limit."""
        now = int(time.time())
        try:
            res = await asyncio.wait_for(self._incr(key, int(window_seconds * 1000)), timeout=self._timeout)
        except STORE_ERRORS as exc:
            logger.error("rate_limit.store_unavailable",
                         extra={"key_scope": key.split(":", 1)[0], "fail_open": self._fail_open, "error": str(exc)})
            if self._fail_open:
                return RateDecision(True, max_attempts, max(0, max_attempts - 1), now + window_seconds)
            return RateDecision(False, max_attempts, 0, now + window_seconds)

        count = int(res[0])
        ttl_ms = int(res[1])
        reset_ts = now + (ttl_ms // 1000) if ttl_ms > 0 else now + window_seconds
        allowed = count <= max_attempts
        remaining = max(0, max_attempts - count) if allowed else 0
        return RateDecision(allowed, max_attempts, remaining, reset_ts)

    async def admit(self, key: str, max_attempts: int, window_seconds: int) -> RateDecision:
        decision = await self.check(key, max_attempts, window_seconds)
        if not decision.allowed:
            logger.warning("rate_limit.exceeded", extra={"key_scope": key.split(":", 1)[0], "limit": max_attempts})
            raise RateLimited(retry_after=decision.retry_after)
        return decision
