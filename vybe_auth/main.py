from contextlib import asynccontextmanager
from fastapi import FastAPI
from vybe_auth.api import cur_version
from vybe_auth.api.routers import build_public_routers
from vybe_auth.auth.constants import APPLE_ISSUERS, GOOGLE_ISSUERS
from vybe_auth.auth.identity import IdentityResolver
from vybe_auth.auth.services import AuthService
from vybe_auth.auth.sessions import SessionManager
from vybe_auth.auth.tokens import TokenCodec
from vybe_auth.auth.verification import FederatedTokenVerifier, LoggingCodeSender, PhoneVerifier
from vybe_auth.background_workers.session_sweeper import SessionSweeper
from vybe_auth.cache._cache import build_redis_client
from vybe_auth.cache.session_cache import SessionCache
from vybe_auth.common.custom_exceptions import register_all_exceptions
from vybe_auth.common.logging_setup import setup_logging, shutdown_logging
from vybe_auth.config.settings import Settings, config_settings
from vybe_auth.db.connection import build_engine
from vybe_auth.middlewares.auth_middleware import AuthenticationMiddleware
from vybe_auth.middlewares.rate_limit_middleware import RateLimitMiddleware
from vybe_auth.middlewares.request_id_middleware import RequestIdMiddleware
from vybe_auth.rate_limiting.guard import RateGuard
from vybe_auth import logger


def public_paths(version_prefix: str):
    return [
        f"{version_prefix}/auth/phone/",
        f"{version_prefix}/auth/google",
        f"{version_prefix}/auth/apple",
        f"{version_prefix}/auth/refresh",
        f"{version_prefix}/health",
        "/metrics",
        "/docs",
        "/openapi.json",
    ]


def build_rate_guard(settings: Settings, redis_client) -> RateGuard:
    return RateGuard(redis_client, fail_open=settings.RATE_LIMIT_FAIL_OPEN,
                     timeout_seconds=settings.RATE_LIMIT_TIMEOUT_SECONDS)


def build_auth_service(settings: Settings, session_maker, redis_client, rate_guard: RateGuard,
                       code_sender=None) -> AuthService:
    """Wire every auth component over the given store clients."""
    codec = TokenCodec(settings)
    phone = PhoneVerifier(
        redis_client, rate_guard, code_sender or LoggingCodeSender(settings.ENV),
        code_ttl_seconds=settings.VERIFICATION_CODE_TTL_SECONDS,
        max_sends=settings.VERIFICATION_MAX_SENDS,
        send_window_seconds=settings.VERIFICATION_SEND_WINDOW_SECONDS,
    )
    sessions = SessionManager(session_maker, SessionCache(redis_client), codec,
                              max_sessions=settings.MAX_SESSIONS_PER_ACCOUNT)
    return AuthService(
        codec=codec,
        phone=phone,
        google=FederatedTokenVerifier("google", GOOGLE_ISSUERS, settings.GOOGLE_CLIENT_ID),
        apple=FederatedTokenVerifier("apple", APPLE_ISSUERS, settings.APPLE_CLIENT_ID),
        identities=IdentityResolver(session_maker),
        sessions=sessions,
    )


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    setup_logging()
    settings: Settings = app.state.settings

    # clients handed in by the caller stay owned by the caller
    owns_engine = getattr(app.state, "session_maker", None) is None
    owns_redis = getattr(app.state, "redis", None) is None

    if owns_engine:
        app.state.engine, app.state.session_maker = build_engine(settings.DATABASE_URL)
    if owns_redis:
        app.state.redis = build_redis_client(settings.REDIS_URL)

    app.state.rate_guard = build_rate_guard(settings, app.state.redis)
    auth_service = build_auth_service(settings, app.state.session_maker, app.state.redis,
                                      app.state.rate_guard, app.state.code_sender)
    app.state.auth_service = auth_service

    sweeper = SessionSweeper(auth_service.sessions, settings.SESSION_SWEEP_INTERVAL_SECONDS)
    sweeper.start()
    logger.info("app.started", extra={"env": settings.ENV})

    try:
        yield
    finally:
        # at this point new requests accept has been stopped already before calling shutdown
        await sweeper.stop()
        if owns_redis:
            await app.state.redis.aclose()
        if owns_engine:
            await app.state.engine.dispose()
        logger.info("app.stopped")
        shutdown_logging()


def create_app(settings: Settings = None, *, session_maker=None, redis_client=None, code_sender=None):
    settings = settings or config_settings
    app = FastAPI(
        title="Vybe Auth",
        version=cur_version,
        lifespan=app_lifespan)

    app.state.settings = settings
    app.state.session_maker = session_maker
    app.state.redis = redis_client
    app.state.code_sender = code_sender

    app.include_router(build_public_routers(settings.API_PREFIX))

    app.add_middleware(AuthenticationMiddleware, paths=public_paths(settings.API_PREFIX))
    app.add_middleware(RateLimitMiddleware, limit=settings.RATE_LIMIT_MAX, window=settings.RATE_LIMIT_WINDOW,
                       excluded_paths=[f"{settings.API_PREFIX}/health", "/metrics"])
    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    if settings.ENABLE_METRICS:
        from vybe_auth.metrics import build_instrumentator
        build_instrumentator().instrument(app).expose(app, endpoint="/metrics")

    return app


app = create_app()
