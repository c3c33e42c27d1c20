from fastapi import HTTPException, Request, status
from fastapi.security import HTTPBearer
from vybe_auth.auth.exceptions import Unauthorized
from vybe_auth.auth.models import AuthenticatedUser


class Authentication(HTTPBearer):
    """Bearer-token gate: verifies the access token and that its session is still live."""

    def __init__(self, auto_error=True):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> AuthenticatedUser:
        try:
            auth_creds = await super().__call__(request)
        except HTTPException as exc:
            raise Unauthorized("Missing or invalid authorization header") from exc
        if auth_creds is None:
            raise Unauthorized("Missing or invalid authorization header")

        auth_service = request.app.state.auth_service
        return await auth_service.authenticate(auth_creds.credentials)


def current_user(request: Request) -> AuthenticatedUser:
    user = getattr(request.state, "auth_user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user
