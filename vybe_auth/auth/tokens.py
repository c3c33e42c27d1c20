import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from jose import jwt, JWTError

from vybe_auth.auth.constants import ACCESS, REFRESH
from vybe_auth.auth.exceptions import InvalidToken
from vybe_auth.auth.utils import hash_token, parse_duration
from vybe_auth.common.utils import now as utc_now
from vybe_auth.config.settings import Settings


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    session_id: str


class TokenCodec:
    """Signs and verifies the access/refresh JWT pair.

    Access and refresh tokens are signed with different secrets and carry a
    ``type`` claim, so neither can be replayed as the other. The codec does no
    I/O; ``clock`` is injectable for expiry tests.
    """

    def __init__(self, settings: Settings, clock: Optional[Callable[[], datetime]] = None):
        if settings.JWT_ACCESS_SECRET == settings.JWT_REFRESH_SECRET:
            raise ValueError("access and refresh secrets must differ")
        self._secrets = {ACCESS: settings.JWT_ACCESS_SECRET, REFRESH: settings.JWT_REFRESH_SECRET}
        self._ttls = {
            ACCESS: parse_duration(settings.JWT_ACCESS_EXPIRATION),
            REFRESH: parse_duration(settings.JWT_REFRESH_EXPIRATION),
        }
        self._algo = settings.JWT_ALGO
        self._hash_algo = settings.TOKEN_HASH_ALGO
        self._clock = clock or utc_now

    @property
    def access_ttl_seconds(self) -> int:
        return self._ttls[ACCESS]

    @property
    def refresh_ttl_seconds(self) -> int:
        return self._ttls[REFRESH]

    def issue_access(self, user_id, session_id) -> str:
        return self._issue(ACCESS, user_id, session_id)

    def issue_refresh(self, user_id, session_id) -> str:
        return self._issue(REFRESH, user_id, session_id)

    def _issue(self, kind: str, user_id, session_id) -> str:
        issued = self._clock()
        expiry = issued + timedelta(seconds=self._ttls[kind])
        payload = {
            "userId": str(user_id),
            "sessionId": str(session_id),
            "type": kind,
            "iat": int(issued.timestamp()),
            "exp": int(expiry.timestamp()),
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(claims=payload, key=self._secrets[kind], algorithm=self._algo)

    def verify(self, token: str, kind: str) -> TokenClaims:
        if kind not in self._secrets:
            raise ValueError(f"unknown token kind: {kind}")
        try:
            # expiry is checked against the injected clock below
            claims = jwt.decode(
                token,
                key=self._secrets[kind],
                algorithms=[self._algo],
                options={"verify_exp": False},
            )
        except (JWTError, AttributeError, TypeError, ValueError) as exc:
            raise InvalidToken("token signature or structure is invalid") from exc

        user_id = claims.get("userId")
        session_id = claims.get("sessionId")
        exp = claims.get("exp")
        if claims.get("type") != kind or not user_id or not session_id or not isinstance(exp, int):
            raise InvalidToken("token claims are malformed")
        if exp <= int(self._clock().timestamp()):
            raise InvalidToken("token is expired")
        return TokenClaims(user_id=str(user_id), session_id=str(session_id))

    def hash(self, token: str) -> str:
        return hash_token(token, self._hash_algo)
