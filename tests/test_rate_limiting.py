from unittest.mock import AsyncMock
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from vybe_auth.auth.exceptions import RateLimited
from vybe_auth.rate_limiting.guard import RateGuard


@pytest.mark.asyncio
async def test_fixed_window_counts_down_then_blocks(rate_guard):
    key = "rl:test:ip:1.2.3.4:/x"
    decisions = [await rate_guard.check(key, 3, 60) for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions] == [2, 1, 0, 0]
    assert decisions[-1].retry_after <= 60


@pytest.mark.asyncio
async def test_window_ttl_is_set_on_first_hit(rate_guard, redis_client):
    key = "rl:test:ttl"
    await rate_guard.check(key, 5, 120)
    ttl = await redis_client.pttl(key)
    assert 0 < ttl <= 120_000


@pytest.mark.asyncio
async def test_keys_are_counted_independently(rate_guard):
    for _ in range(2):
        await rate_guard.check("rl:a", 2, 60)
    assert not (await rate_guard.check("rl:a", 2, 60)).allowed
    assert (await rate_guard.check("rl:b", 2, 60)).allowed


@pytest.mark.asyncio
async def test_admit_raises_with_retry_after(rate_guard):
    await rate_guard.admit("rl:admit", 1, 30)
    with pytest.raises(RateLimited) as exc_info:
        await rate_guard.admit("rl:admit", 1, 30)
    assert 0 <= exc_info.value.retry_after <= 30
    assert exc_info.value.code == "RATE_LIMITED"


@pytest.mark.asyncio
async def test_script_evicted_from_cache_falls_back(rate_guard, redis_client):
    await rate_guard.check("rl:flush", 5, 60)
    await redis_client.script_flush()
    decision = await rate_guard.check("rl:flush", 5, 60)
    assert decision.allowed
    assert decision.remaining == 3


def _broken_redis():
    broken = AsyncMock()
    broken.script_load.side_effect = RedisConnectionError("down")
    broken.eval.side_effect = RedisConnectionError("down")
    return broken


@pytest.mark.asyncio
async def test_store_outage_fails_open():
    guard = RateGuard(_broken_redis(), fail_open=True)
    for _ in range(10):
        decision = await guard.admit("rl:outage", 1, 60)
        assert decision.allowed


@pytest.mark.asyncio
async def test_store_outage_can_fail_closed():
    guard = RateGuard(_broken_redis(), fail_open=False)
    with pytest.raises(RateLimited):
        await guard.admit("rl:outage", 5, 60)
