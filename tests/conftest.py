import os
from dotenv import load_dotenv

load_dotenv()

# settings are read at import time; tests never talk to real infrastructure
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef0123")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-0123456789abcdef012")
os.environ.setdefault("ENV", "dev")

from fakeredis import FakeAsyncRedis, FakeServer
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from vybe_auth.auth.identity import IdentityResolver
from vybe_auth.auth.sessions import SessionManager
from vybe_auth.auth.tokens import TokenCodec
from vybe_auth.auth.verification import PhoneVerifier
from vybe_auth.cache.session_cache import SessionCache
from vybe_auth.config.settings import Settings
from vybe_auth.db.connection import build_engine, create_tables
from vybe_auth.main import create_app
from vybe_auth.rate_limiting.guard import RateGuard
from tests.helpers import CapturingSender


@pytest.fixture
def settings():
    return Settings(SESSION_SWEEP_INTERVAL_SECONDS=0)


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine, maker = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await create_tables(engine)
    try:
        yield maker
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def redis_client():
    client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    try:
        yield client
    finally:
        await client.aclose()


@pytest.fixture
def codec(settings):
    return TokenCodec(settings)


@pytest.fixture
def rate_guard(redis_client):
    return RateGuard(redis_client)


@pytest.fixture
def session_cache(redis_client):
    return SessionCache(redis_client)


@pytest.fixture
def session_manager(session_maker, session_cache, codec):
    return SessionManager(session_maker, session_cache, codec, max_sessions=5)


@pytest.fixture
def identity_resolver(session_maker):
    return IdentityResolver(session_maker)


@pytest.fixture
def code_sender():
    return CapturingSender()


@pytest.fixture
def phone_verifier(redis_client, rate_guard, code_sender):
    return PhoneVerifier(redis_client, rate_guard, code_sender,
                         code_ttl_seconds=300, max_sends=5, send_window_seconds=3600)


@pytest.fixture
def app(settings, session_maker, redis_client, code_sender):
    return create_app(settings, session_maker=session_maker, redis_client=redis_client, code_sender=code_sender)


@pytest_asyncio.fixture
async def ac_client(app):
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
