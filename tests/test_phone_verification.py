import pytest
from vybe_auth.auth.exceptions import InvalidCredential, RateLimited

PHONE = "+14155551234"


@pytest.mark.asyncio
async def test_code_is_stored_with_ttl_and_sent(phone_verifier, code_sender, redis_client):
    result = await phone_verifier.request_code(PHONE)

    assert result == {"success": True}
    stored = await redis_client.get(phone_verifier.code_key(PHONE))
    assert stored == code_sender.codes[PHONE]
    assert 0 < await redis_client.ttl(phone_verifier.code_key(PHONE)) <= 300


@pytest.mark.asyncio
async def test_code_verifies_exactly_once(phone_verifier, code_sender):
    await phone_verifier.request_code(PHONE)
    code = code_sender.codes[PHONE]

    await phone_verifier.verify_code(PHONE, code)
    with pytest.raises(InvalidCredential):
        await phone_verifier.verify_code(PHONE, code)


@pytest.mark.asyncio
async def test_wrong_code_keeps_the_real_one_usable(phone_verifier, code_sender):
    await phone_verifier.request_code(PHONE)
    code = code_sender.codes[PHONE]
    wrong = "000000" if code != "000000" else "111111"

    with pytest.raises(InvalidCredential):
        await phone_verifier.verify_code(PHONE, wrong)
    await phone_verifier.verify_code(PHONE, code)


@pytest.mark.asyncio
async def test_unknown_phone_is_rejected(phone_verifier):
    with pytest.raises(InvalidCredential):
        await phone_verifier.verify_code(PHONE, "123456")


@pytest.mark.asyncio
async def test_new_request_replaces_previous_code(phone_verifier, code_sender, redis_client):
    await phone_verifier.request_code(PHONE)
    await redis_client.set(phone_verifier.code_key(PHONE), "111111")
    await phone_verifier.request_code(PHONE)

    latest = code_sender.codes[PHONE]
    assert await redis_client.get(phone_verifier.code_key(PHONE)) == latest


@pytest.mark.asyncio
async def test_sixth_send_within_the_hour_is_rate_limited(phone_verifier, redis_client):
    for _ in range(5):
        await phone_verifier.request_code(PHONE)

    with pytest.raises(RateLimited) as exc_info:
        await phone_verifier.request_code(PHONE)

    assert 0 < exc_info.value.retry_after <= 3600
    assert 0 < await redis_client.ttl(phone_verifier.attempts_key(PHONE)) <= 3600


@pytest.mark.asyncio
async def test_send_limit_is_per_phone(phone_verifier):
    for _ in range(5):
        await phone_verifier.request_code(PHONE)
    await phone_verifier.request_code("+14155550000")
