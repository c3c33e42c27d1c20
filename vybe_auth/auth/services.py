from typing import Optional
from vybe_auth.auth.constants import ACCESS, logger
from vybe_auth.auth.exceptions import InvalidToken, Unauthorized
from vybe_auth.auth.identity import CredentialKind, IdentityResolver, ProfileHints, ResolvedIdentity
from vybe_auth.auth.models import AccountSummary, AppleFullName, AuthenticatedUser, AuthResult, TokenPairOut
from vybe_auth.auth.sessions import SessionManager, TokenPair
from vybe_auth.auth.tokens import TokenCodec
from vybe_auth.auth.verification import FederatedTokenVerifier, PhoneVerifier


def to_token_out(pair: TokenPair) -> TokenPairOut:
    return TokenPairOut(access_token=pair.access_token, refresh_token=pair.refresh_token, expires_in=pair.expires_in)


def to_auth_result(resolved: ResolvedIdentity, pair: TokenPair) -> AuthResult:
    account = resolved.account
    summary = AccountSummary(
        id=str(account.id),
        phone=account.phone,
        email=account.email,
        display_name=account.display_name,
        username=account.username,
        avatar_url=account.avatar_url,
        verified_badges=list(account.verified_badges or []),
        is_new_user=resolved.is_new_account,
    )
    return AuthResult(user=summary, tokens=to_token_out(pair))


class AuthService:
    """Entry points used by the HTTP layer and by the authentication gate."""

    def __init__(self, *, codec: TokenCodec, phone: PhoneVerifier, google: FederatedTokenVerifier,
                 apple: FederatedTokenVerifier, identities: IdentityResolver, sessions: SessionManager):
        self.codec = codec
        self.phone = phone
        self.google = google
        self.apple = apple
        self.identities = identities
        self.sessions = sessions

    async def send_verification_code(self, phone: str) -> dict:
        result = await self.phone.request_code(phone)
        logger.info("auth.phone.code_requested", extra={"phone": phone})
        return result

    async def verify_phone_code(self, phone: str, code: str, device_type: Optional[str] = None,
                                ip: Optional[str] = None) -> AuthResult:
        await self.phone.verify_code(phone, code)
        resolved = await self.identities.resolve(CredentialKind.PHONE, phone)
        return await self._sign_in(resolved, device_type, ip)

    async def authenticate_with_google(self, id_token: str, device_type: Optional[str] = None,
                                       ip: Optional[str] = None) -> AuthResult:
        identity = self.google.verify(id_token)
        hints = ProfileHints(email=identity.email, display_name=identity.name, avatar_url=identity.picture)
        resolved = await self.identities.resolve(CredentialKind.GOOGLE, identity.subject, hints)
        return await self._sign_in(resolved, device_type, ip)

    async def authenticate_with_apple(self, identity_token: str, device_type: Optional[str] = None,
                                      ip: Optional[str] = None,
                                      full_name: Optional[AppleFullName] = None) -> AuthResult:
        identity = self.apple.verify(identity_token)
        # Apple only sends the user's name to the client, on first sign-in
        display_name = full_name.display_name() if full_name else None
        hints = ProfileHints(email=identity.email, display_name=display_name or identity.name)
        resolved = await self.identities.resolve(CredentialKind.APPLE, identity.subject, hints)
        return await self._sign_in(resolved, device_type, ip)

    async def _sign_in(self, resolved: ResolvedIdentity, device_type: Optional[str], ip: Optional[str]) -> AuthResult:
        pair = await self.sessions.create_session(resolved.account.id, device_type, ip)
        logger.info("auth.login.success", extra={"account_id": str(resolved.account.id),
                                                 "new_account": resolved.is_new_account})
        return to_auth_result(resolved, pair)

    async def refresh(self, refresh_token: str, ip: Optional[str] = None) -> TokenPairOut:
        pair = await self.sessions.rotate(refresh_token, ip)
        return to_token_out(pair)

    async def logout(self, session_id: str) -> None:
        await self.sessions.revoke(session_id)

    async def authenticate(self, access_token: str) -> AuthenticatedUser:
        try:
            claims = self.codec.verify(access_token, ACCESS)
        except InvalidToken as exc:
            raise Unauthorized("Invalid or expired token") from exc

        if not await self.sessions.is_valid(claims.session_id):
            logger.warning("auth.authenticate.session_invalid", extra={"session_id": claims.session_id})
            raise Unauthorized("Session expired")
        return AuthenticatedUser(user_id=claims.user_id, session_id=claims.session_id)
