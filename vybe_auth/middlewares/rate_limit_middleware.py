from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from vybe_auth.auth.exceptions import RateLimited
from vybe_auth.common.custom_exceptions import auth_error_response
from vybe_auth.middlewares.constants import logger
from vybe_auth.rate_limiting.dependencies import rate_limit_key


class RateLimitMiddleware(BaseHTTPMiddleware):
    """App-wide per-ip limit; also writes the X-RateLimit-* headers.

    A per-route limiter dependency overwrites ``request.state.rate_limit`` with
    its own decision, which then wins for the headers.
    """

    def __init__(self, app, limit: int = 100, window: int = 60, excluded_paths=()):
        super().__init__(app)
        self.limit = limit
        self.window = window
        self.excluded_paths = tuple(excluded_paths)

    async def dispatch(self, request: Request, call_next):
        if self.excluded_paths and request.url.path.startswith(self.excluded_paths):
            return await call_next(request)

        guard = request.app.state.rate_guard
        key = rate_limit_key(request, "global")
        decision = await guard.check(key, self.limit, self.window)
        if not decision.allowed:
            logger.warning("rate_limit.global_exceeded", extra={"path": request.url.path})
            return auth_error_response(RateLimited(retry_after=decision.retry_after))

        request.state.rate_limit = {"limit": decision.limit, "remaining": decision.remaining,
                                    "reset": decision.reset_ts}
        response = await call_next(request)

        rl = request.state.rate_limit
        response.headers["X-RateLimit-Limit"] = str(rl["limit"])
        response.headers["X-RateLimit-Remaining"] = str(rl["remaining"])
        response.headers["X-RateLimit-Reset"] = str(rl["reset"])
        return response
