from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from vybe_auth import logger
from vybe_auth.auth.exceptions import (
    AccountConflict, AuthError, InvalidCredential, InvalidRefreshToken, RateLimited, SessionCompromised, Unauthorized,
)
from vybe_auth.common.utils import build_error, json_error
from vybe_auth.common.constants import request_id_ctx

# HTTP status for each auth error kind
AUTH_ERROR_STATUS = {
    RateLimited: status.HTTP_429_TOO_MANY_REQUESTS,
    InvalidCredential: status.HTTP_400_BAD_REQUEST,
    InvalidRefreshToken: status.HTTP_401_UNAUTHORIZED,
    SessionCompromised: status.HTTP_401_UNAUTHORIZED,
    AccountConflict: status.HTTP_409_CONFLICT,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
}


def auth_error_response(exc: AuthError):
    rid = request_id_ctx.get(None)
    status_code = AUTH_ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    payload = build_error(code=exc.code, details={"message": exc.message}, request_id=rid)
    return json_error(payload, status_code=status_code, headers=headers)


async def auth_exception_handler(request: Request, exc: AuthError):
    logger.info("auth.request.rejected", extra={"path": request.url.path, "error_code": exc.code})
    return auth_error_response(exc)


async def fallback_handler(request: Request, exc: Exception):

    rid = request_id_ctx.get(None)
    body = {"message": "Internal Server Error"}

    logger.error(
        "unexpected.exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "request_id": rid,
        },
        exc_info=exc,
    )

    payload = build_error(code="SERVER_ERROR", details=body, request_id=rid)
    return json_error(payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)
    logger.warning(
        "request.validation_failed",
        extra={
            "errors": exc.errors(),
            "path": request.url.path,
            "request_id": rid,
        },
    )

    payload = build_error(code="UNPROCESSABLE_ENTITY", details={"message": "invalid request"}, request_id=rid)
    return json_error(payload, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def http_exception_handler(request: Request, exc: HTTPException):

    rid = request_id_ctx.get(None)
    payload = build_error(code=f"HTTP_{exc.status_code}", details={"message": exc.detail}, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        Exception, # catch all unidentified/unhandled exceptions
        fallback_handler
    )

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    app.add_exception_handler(
        HTTPException,
        http_exception_handler
    )

    app.add_exception_handler(
        AuthError,
        auth_exception_handler
    )
