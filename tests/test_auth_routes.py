import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from vybe_auth.main import create_app
from tests.helpers import make_id_token, url_prefix

PHONE = "+14155551234"


async def phone_login(ac_client, code_sender, phone=PHONE, device_type="ios"):
    res = await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": phone})
    assert res.status_code == 200
    res = await ac_client.post(f"{url_prefix}/auth/phone/verify",
                               json={"phone": phone, "code": code_sender.codes[phone], "deviceType": device_type})
    assert res.status_code == 200
    return res.json()["data"]


def bearer(tokens):
    return {"Authorization": f"Bearer {tokens['accessToken']}"}


@pytest.mark.asyncio
async def test_health(ac_client):
    res = await ac_client.get(f"{url_prefix}/health")
    assert res.status_code == 200
    assert res.json()["data"] == {"status": "healthy"}


@pytest.mark.asyncio
async def test_phone_login_flow(ac_client, code_sender):
    res = await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": PHONE})
    assert res.status_code == 200
    assert res.json()["data"] == {"success": True}
    assert res.headers["X-RateLimit-Limit"] == "3"

    res = await ac_client.post(f"{url_prefix}/auth/phone/verify",
                               json={"phone": PHONE, "code": code_sender.codes[PHONE]})
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    user, tokens = body["data"]["user"], body["data"]["tokens"]
    assert user["phone"] == PHONE
    assert user["isNewUser"] is True
    assert user["verifiedBadges"] == ["PHONE"]
    assert tokens["expiresIn"] == 900
    assert tokens["accessToken"] and tokens["refreshToken"]

    again = await phone_login(ac_client, code_sender)
    assert again["user"]["id"] == user["id"]
    assert again["user"]["isNewUser"] is False


@pytest.mark.asyncio
async def test_wrong_code_is_bad_request(ac_client, code_sender):
    await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": PHONE})
    wrong = "000000" if code_sender.codes[PHONE] != "000000" else "111111"

    res = await ac_client.post(f"{url_prefix}/auth/phone/verify", json={"phone": PHONE, "code": wrong})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_CREDENTIAL"


@pytest.mark.parametrize("phone", ["4155551234", "+0415555123", "+1415", "+1415555123456789"])
@pytest.mark.asyncio
async def test_malformed_phone_is_rejected(ac_client, phone):
    res = await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": phone})
    assert res.status_code == 422
    assert res.json()["error"]["code"] == "UNPROCESSABLE_ENTITY"


@pytest.mark.asyncio
async def test_send_code_is_rate_limited_per_ip(ac_client):
    for _ in range(3):
        res = await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": PHONE})
        assert res.status_code == 200

    res = await ac_client.post(f"{url_prefix}/auth/phone/send-code", json={"phone": PHONE})
    assert res.status_code == 429
    assert res.json()["error"]["code"] == "RATE_LIMITED"
    assert int(res.headers["Retry-After"]) <= 300


@pytest.mark.asyncio
async def test_me_requires_bearer(ac_client, code_sender):
    res = await ac_client.get(f"{url_prefix}/auth/me")
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "UNAUTHORIZED"

    res = await ac_client.get(f"{url_prefix}/auth/me", headers={"Authorization": "Bearer nope"})
    assert res.status_code == 401

    data = await phone_login(ac_client, code_sender)
    res = await ac_client.get(f"{url_prefix}/auth/me", headers=bearer(data["tokens"]))
    assert res.status_code == 200
    assert res.json()["data"]["userId"] == data["user"]["id"]
    assert res.json()["data"]["sessionId"]


@pytest.mark.asyncio
async def test_refresh_rotates_and_detects_reuse(ac_client, code_sender):
    data = await phone_login(ac_client, code_sender)
    first = data["tokens"]

    res = await ac_client.post(f"{url_prefix}/auth/refresh", json={"refreshToken": first["refreshToken"]})
    assert res.status_code == 200
    second = res.json()["data"]
    assert second["refreshToken"] != first["refreshToken"]

    res = await ac_client.get(f"{url_prefix}/auth/me", headers=bearer(second))
    assert res.status_code == 200

    res = await ac_client.post(f"{url_prefix}/auth/refresh", json={"refreshToken": first["refreshToken"]})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "SESSION_COMPROMISED"

    res = await ac_client.get(f"{url_prefix}/auth/me", headers=bearer(second))
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_refresh_with_garbage_is_unauthorized(ac_client):
    res = await ac_client.post(f"{url_prefix}/auth/refresh", json={"refreshToken": "garbage"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "INVALID_REFRESH_TOKEN"


@pytest.mark.asyncio
async def test_logout_ends_only_that_session(ac_client, code_sender):
    phone = await phone_login(ac_client, code_sender, device_type="ios")
    tablet = await phone_login(ac_client, code_sender, device_type="ipad")

    res = await ac_client.post(f"{url_prefix}/auth/logout", headers=bearer(phone["tokens"]))
    assert res.status_code == 204

    res = await ac_client.get(f"{url_prefix}/auth/me", headers=bearer(phone["tokens"]))
    assert res.status_code == 401
    res = await ac_client.get(f"{url_prefix}/auth/me", headers=bearer(tablet["tokens"]))
    assert res.status_code == 200

    res = await ac_client.post(f"{url_prefix}/auth/refresh", json={"refreshToken": phone["tokens"]["refreshToken"]})
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_google_then_apple_link_by_email(ac_client):
    res = await ac_client.post(f"{url_prefix}/auth/google", json={
        "idToken": make_id_token("g-1", email="ada@example.com", name="Ada Lovelace"),
        "deviceType": "android",
    })
    assert res.status_code == 200
    google_user = res.json()["data"]["user"]
    assert google_user["isNewUser"] is True
    assert google_user["displayName"] == "Ada Lovelace"

    res = await ac_client.post(f"{url_prefix}/auth/apple", json={
        "identityToken": make_id_token("a-1", email="ada@example.com"),
        "authorizationCode": "auth-code",
        "fullName": {"givenName": "Ada", "familyName": "L"},
    })
    assert res.status_code == 200
    apple_user = res.json()["data"]["user"]
    assert apple_user["id"] == google_user["id"]
    assert apple_user["isNewUser"] is False
    assert set(apple_user["verifiedBadges"]) == {"GOOGLE", "APPLE"}


@pytest.mark.asyncio
async def test_malformed_federated_token_is_bad_request(ac_client):
    res = await ac_client.post(f"{url_prefix}/auth/google", json={"idToken": "not-a-jwt"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_CREDENTIAL"


@pytest.mark.asyncio
async def test_request_id_is_echoed(ac_client):
    res = await ac_client.get(f"{url_prefix}/health", headers={"X-Request-ID": "req-123"})
    assert res.headers["X-Request-ID"] == "req-123"

    res = await ac_client.get(f"{url_prefix}/auth/me")
    assert res.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_app_honours_injected_limits_and_prefix(settings, session_maker, redis_client, code_sender):
    custom = settings.model_copy(update={"SMS_RATE_LIMIT": 1, "API_PREFIX": "/api/v2"})
    app = create_app(custom, session_maker=session_maker, redis_client=redis_client, code_sender=code_sender)

    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            res = await ac.post("/api/v2/auth/phone/send-code", json={"phone": PHONE})
            assert res.status_code == 200
            assert res.headers["X-RateLimit-Limit"] == "1"

            res = await ac.post("/api/v2/auth/phone/send-code", json={"phone": PHONE})
            assert res.status_code == 429
            assert res.headers["X-RateLimit-Limit"] == "1"
            assert res.headers["X-RateLimit-Remaining"] == "0"

            res = await ac.get(f"{url_prefix}/health")
            assert res.status_code == 401
            res = await ac.get("/api/v2/health")
            assert res.status_code == 200
