from typing import Optional


class AuthError(Exception):
    """Base class for every failure the auth subsystem reports to callers."""

    code = "AUTH_ERROR"
    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RateLimited(AuthError):
    code = "RATE_LIMITED"
    default_message = "Too many attempts. Try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = max(0, int(retry_after))


class InvalidCredential(AuthError):
    code = "INVALID_CREDENTIAL"
    default_message = "Invalid credential"


class InvalidRefreshToken(AuthError):
    code = "INVALID_REFRESH_TOKEN"
    default_message = "Invalid or expired refresh token"


class SessionCompromised(AuthError):
    code = "SESSION_COMPROMISED"
    default_message = "Refresh token reuse detected; all sessions revoked"


class AccountConflict(AuthError):
    code = "ACCOUNT_CONFLICT"
    default_message = "Identifier is already linked to another account"


class Unauthorized(AuthError):
    code = "UNAUTHORIZED"
    default_message = "Missing or invalid credentials"


class InvalidToken(Exception):
    """Raised by the token codec; callers translate it into an AuthError."""
