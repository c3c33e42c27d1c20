from typing import Optional
from fastapi import Request
from vybe_auth.auth.exceptions import RateLimited
from vybe_auth.common.utils import client_ip
from vybe_auth.rate_limiting.constants import RATE_LIMIT_PREFIX, logger


def rate_limit_key(request: Request, prefix: str, route_key: Optional[str] = None) -> str:
    identifier = client_ip(request) or "unknown"
    return f"{RATE_LIMIT_PREFIX}:{prefix}:ip:{identifier}:{route_key or request.url.path}"


def rate_limit_dependency(prefix: str, route_key: Optional[str] = None):
    """Per-route limiter; limit and window come from ``{PREFIX}_RATE_LIMIT`` / ``{PREFIX}_RATE_WINDOW``
    of the app's settings, read per request."""

    limit_field = f"{prefix.upper()}_RATE_LIMIT"
    window_field = f"{prefix.upper()}_RATE_WINDOW"

    async def _dep(request: Request):
        settings = request.app.state.settings
        limit = getattr(settings, limit_field)
        window = getattr(settings, window_field)

        guard = request.app.state.rate_guard
        decision = await guard.check(rate_limit_key(request, prefix, route_key), limit, window)
        # the route decision wins for the X-RateLimit-* headers, on 429s too
        request.state.rate_limit = {"limit": decision.limit, "remaining": decision.remaining, "reset": decision.reset_ts}
        if not decision.allowed:
            logger.warning("rate_limit.exceeded", extra={"key_scope": prefix, "limit": limit})
            raise RateLimited(retry_after=decision.retry_after)
    return _dep


# pre-configured limiters for the auth routes
auth_rate_limit = rate_limit_dependency("auth")

sms_rate_limit = rate_limit_dependency("sms")
