import asyncio
from typing import Iterable
from redis.exceptions import RedisError
from vybe_auth.cache.utils import build_key
from vybe_auth.common.constants import SESSION_CACHE_PREFIX
from vybe_auth.common.logging_setup import get_logger

logger = get_logger("vybe.cache")

CACHE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


class SessionCache:
    """Advisory ``session:{id} -> account id`` projection of live sessions.

    A hit means the session is valid; a miss proves nothing and callers must
    consult the durable store. Every store failure is logged and swallowed:
    reads report a miss, writes are skipped.
    """

    def __init__(self, redis_client):
        self._redis = redis_client

    @staticmethod
    def key(session_id) -> str:
        return build_key(SESSION_CACHE_PREFIX, str(session_id))

    async def set(self, session_id, account_id, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        try:
            await self._redis.set(self.key(session_id), str(account_id), ex=int(ttl_seconds))
        except CACHE_ERRORS as exc:
            logger.warning("session_cache.write_failed", extra={"session_id": str(session_id), "error": str(exc)})

    async def contains(self, session_id) -> bool:
        try:
            return bool(await self._redis.exists(self.key(session_id)))
        except CACHE_ERRORS as exc:
            logger.warning("session_cache.read_failed", extra={"session_id": str(session_id), "error": str(exc)})
            return False

    async def delete(self, session_id) -> None:
        try:
            await self._redis.delete(self.key(session_id))
        except CACHE_ERRORS as exc:
            logger.warning("session_cache.delete_failed", extra={"session_id": str(session_id), "error": str(exc)})

    async def delete_many(self, session_ids: Iterable) -> None:
        keys = [self.key(sid) for sid in session_ids]
        if not keys:
            return
        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                for k in keys:
                    pipe.delete(k)
                await pipe.execute()
        except CACHE_ERRORS as exc:
            logger.warning("session_cache.bulk_delete_failed", extra={"count": len(keys), "error": str(exc)})
