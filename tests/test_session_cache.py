import uuid
from unittest.mock import AsyncMock, MagicMock
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from vybe_auth.auth.constants import REFRESH
from vybe_auth.auth.identity import CredentialKind
from vybe_auth.auth.sessions import SessionManager
from vybe_auth.cache.session_cache import SessionCache


@pytest.mark.asyncio
async def test_set_contains_delete(session_cache, redis_client):
    sid, account = uuid.uuid4(), uuid.uuid4()
    await session_cache.set(sid, account, 60)

    assert await session_cache.contains(sid)
    assert await redis_client.get(f"session:{sid}") == str(account)
    assert 0 < await redis_client.ttl(f"session:{sid}") <= 60

    await session_cache.delete(sid)
    assert not await session_cache.contains(sid)


@pytest.mark.asyncio
async def test_non_positive_ttl_is_not_cached(session_cache):
    sid = uuid.uuid4()
    await session_cache.set(sid, uuid.uuid4(), 0)
    assert not await session_cache.contains(sid)


@pytest.mark.asyncio
async def test_delete_many(session_cache):
    sids = [uuid.uuid4() for _ in range(3)]
    for sid in sids:
        await session_cache.set(sid, "acct", 60)

    await session_cache.delete_many(sids[:2])
    assert [await session_cache.contains(s) for s in sids] == [False, False, True]
    await session_cache.delete_many([])


def _broken_redis():
    broken = MagicMock()
    broken.set = AsyncMock(side_effect=RedisConnectionError("down"))
    broken.exists = AsyncMock(side_effect=RedisConnectionError("down"))
    broken.delete = AsyncMock(side_effect=RedisConnectionError("down"))
    broken.pipeline.side_effect = RedisConnectionError("down")
    return broken


@pytest.mark.asyncio
async def test_store_failures_are_swallowed():
    cache = SessionCache(_broken_redis())
    sid = uuid.uuid4()

    await cache.set(sid, "acct", 60)
    assert not await cache.contains(sid)
    await cache.delete(sid)
    await cache.delete_many([sid])


@pytest.mark.asyncio
async def test_sessions_work_through_cache_outage(session_maker, codec, identity_resolver):
    manager = SessionManager(session_maker, SessionCache(_broken_redis()), codec)

    resolved = await identity_resolver.resolve(CredentialKind.PHONE, "+14155551234")
    pair = await manager.create_session(resolved.account.id, None, None)
    sid = codec.verify(pair.refresh_token, REFRESH).session_id

    assert await manager.is_valid(sid)
    rotated = await manager.rotate(pair.refresh_token, None)
    await manager.revoke(codec.verify(rotated.refresh_token, REFRESH).session_id)
    assert not await manager.is_valid(sid)
