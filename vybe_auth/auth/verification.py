import hmac
import time
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence
from jose import jwt, JWTError
from vybe_auth.auth.constants import logger
from vybe_auth.auth.exceptions import InvalidCredential
from vybe_auth.auth.utils import generate_verification_code
from vybe_auth.cache.utils import build_key
from vybe_auth.common.constants import VERIFICATION_PREFIX
from vybe_auth.rate_limiting.guard import RateGuard


class CodeSender(Protocol):
    async def send(self, phone: str, code: str) -> None: ...


class LoggingCodeSender:
    """Stand-in for an SMS gateway: logs the code, in clear text only in dev."""

    def __init__(self, env: str = "dev"):
        self.env = env

    async def send(self, phone: str, code: str) -> None:
        logger.info("auth.phone.code_sent", extra={
            "phone": phone,
            "verification_code": code if self.env == "dev" else "[REDACTED]",
        })


class PhoneVerifier:
    """Issues and checks one-time phone codes kept in Redis."""

    def __init__(self, redis_client, rate_guard: RateGuard, sender: CodeSender, *,
                 code_ttl_seconds: int = 300, max_sends: int = 5, send_window_seconds: int = 3600):
        self._redis = redis_client
        self._guard = rate_guard
        self._sender = sender
        self.code_ttl_seconds = code_ttl_seconds
        self.max_sends = max_sends
        self.send_window_seconds = send_window_seconds

    @staticmethod
    def code_key(phone: str) -> str:
        return build_key(VERIFICATION_PREFIX, phone)

    @staticmethod
    def attempts_key(phone: str) -> str:
        return build_key(VERIFICATION_PREFIX, "attempts", phone)

    async def request_code(self, phone: str) -> dict:
        # raises RateLimited on the (max_sends + 1)th send inside the window
        await self._guard.admit(self.attempts_key(phone), self.max_sends, self.send_window_seconds)

        code = generate_verification_code()
        await self._redis.set(self.code_key(phone), code, ex=self.code_ttl_seconds)
        await self._sender.send(phone, code)
        return {"success": True}

    async def verify_code(self, phone: str, code: str) -> None:
        key = self.code_key(phone)
        stored = await self._redis.get(key)
        if stored is None:
            logger.warning("auth.phone.verify_failed", extra={"phone": phone, "reason": "code_missing"})
            raise InvalidCredential("Verification code expired or not found")

        if not hmac.compare_digest(str(stored).encode(), str(code).encode()):
            logger.warning("auth.phone.verify_failed", extra={"phone": phone, "reason": "code_mismatch"})
            raise InvalidCredential("Invalid verification code")

        # only the caller that actually removes the key may use the code
        if not await self._redis.delete(key):
            logger.warning("auth.phone.verify_failed", extra={"phone": phone, "reason": "code_consumed"})
            raise InvalidCredential("Verification code expired or not found")


@dataclass(frozen=True)
class FederatedIdentity:
    provider: str
    subject: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


class FederatedTokenVerifier:
    """Extracts the subject and profile hints from a Google or Apple identity token.

    Only the payload is decoded. When ``audience`` is set the issuer, audience
    and expiry claims are also enforced. Signatures are not checked against the
    provider's published keys.
    """

    def __init__(self, provider: str, issuers: Sequence[str], audience: Optional[str] = None):
        self.provider = provider
        self.issuers = tuple(issuers)
        self.audience = audience

    def verify(self, token: str) -> FederatedIdentity:
        if not isinstance(token, str) or token.count(".") != 2:
            raise InvalidCredential(f"Invalid {self.provider} identity token")
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise InvalidCredential(f"Invalid {self.provider} identity token") from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise InvalidCredential(f"Invalid {self.provider} identity token")

        if self.audience:
            self._check_claims(claims)

        email = claims.get("email")
        return FederatedIdentity(
            provider=self.provider,
            subject=subject,
            email=email.strip().lower() if isinstance(email, str) and email.strip() else None,
            name=claims.get("name") if isinstance(claims.get("name"), str) else None,
            picture=claims.get("picture") if isinstance(claims.get("picture"), str) else None,
        )

    def _check_claims(self, claims: dict) -> None:
        if claims.get("iss") not in self.issuers:
            logger.warning("auth.federated.rejected", extra={"provider": self.provider, "reason": "issuer"})
            raise InvalidCredential(f"Invalid {self.provider} identity token")

        aud = claims.get("aud")
        audiences = aud if isinstance(aud, list) else [aud]
        if self.audience not in audiences:
            logger.warning("auth.federated.rejected", extra={"provider": self.provider, "reason": "audience"})
            raise InvalidCredential(f"Invalid {self.provider} identity token")

        exp = claims.get("exp")
        if exp is not None and (not isinstance(exp, (int, float)) or exp <= time.time()):
            logger.warning("auth.federated.rejected", extra={"provider": self.provider, "reason": "expired"})
            raise InvalidCredential(f"Invalid {self.provider} identity token")
