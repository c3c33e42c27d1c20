from typing import Sequence
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from vybe_auth.auth.dependencies import Authentication
from vybe_auth.auth.exceptions import AuthError
from vybe_auth.common.custom_exceptions import auth_error_response
from vybe_auth.middlewares.constants import logger


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Requires a valid access token, backed by a live session, on every non-public path."""

    def __init__(self, app, *, paths: Sequence[str]):
        super().__init__(app)
        self.paths = tuple(paths)

    async def dispatch(self, request: Request, call_next):

        if request.url.path.startswith(self.paths):
            return await call_next(request)

        try:
            auth_user = await Authentication()(request)
        except AuthError as exc:
            logger.warning("auth.middleware.failed", extra={
                "reason": exc.message,
                "path": request.url.path,
                "method": request.method
            })
            return auth_error_response(exc)

        request.state.auth_user = auth_user
        request.state.user_id = auth_user.user_id
        request.state.session_id = auth_user.session_id

        logger.debug("auth.middleware.success", extra={
            "user_id": auth_user.user_id,
            "path": request.url.path
        })

        return await call_next(request)
