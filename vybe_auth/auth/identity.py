import enum
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from vybe_auth.auth import repository
from vybe_auth.auth.constants import logger
from vybe_auth.auth.exceptions import AccountConflict
from vybe_auth.schema import Account, VerifiedBadge


class CredentialKind(str, enum.Enum):
    PHONE = "phone"
    GOOGLE = "google"
    APPLE = "apple"


# the account column each credential kind is identified by, and the badge it earns
KIND_COLUMN = {
    CredentialKind.PHONE: "phone",
    CredentialKind.GOOGLE: "google_id",
    CredentialKind.APPLE: "apple_id",
}
KIND_BADGE = {
    CredentialKind.PHONE: VerifiedBadge.PHONE,
    CredentialKind.GOOGLE: VerifiedBadge.GOOGLE,
    CredentialKind.APPLE: VerifiedBadge.APPLE,
}


@dataclass(frozen=True)
class ProfileHints:
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class ResolvedIdentity:
    account: Account
    is_new_account: bool


def _with_badge(account: Account, badge: VerifiedBadge) -> bool:
    badges = list(account.verified_badges or [])
    if badge.value in badges:
        return False
    # reassign so the JSON column is marked dirty
    account.verified_badges = badges + [badge.value]
    return True


class IdentityResolver:
    """Maps a verified external identity onto exactly one account.

    Lookup order: the identifier column for the credential kind, then the
    email hint (linking the new identifier into that account), then a new
    account. Unique constraints back this up; a constraint race is retried once.
    """

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def resolve(self, kind: CredentialKind, external_id: str,
                      hints: Optional[ProfileHints] = None) -> ResolvedIdentity:
        hints = hints or ProfileHints()
        for attempt in (1, 2):
            async with self.session_maker() as session:
                try:
                    resolved = await self._resolve(session, kind, external_id, hints)
                    await session.commit()
                    return resolved
                except IntegrityError:
                    await session.rollback()
                    logger.warning("auth.identity.integrity_error", extra={"kind": kind.value, "attempt": attempt})
        raise AccountConflict()

    async def _resolve(self, session: AsyncSession, kind: CredentialKind, external_id: str,
                       hints: ProfileHints) -> ResolvedIdentity:
        column = KIND_COLUMN[kind]
        badge = KIND_BADGE[kind]

        account = await repository.account_by_identifier(session, column, external_id)
        if account is not None:
            if _with_badge(account, badge):
                await session.flush()
            return ResolvedIdentity(account=account, is_new_account=False)

        if hints.email:
            account = await repository.account_by_identifier(session, "email", hints.email)
            if account is not None:
                existing = getattr(account, column)
                if existing and existing != external_id:
                    logger.warning("auth.identity.link_conflict", extra={"kind": kind.value,
                                                                         "account_id": str(account.id)})
                    raise AccountConflict(f"Email is already linked to a different {kind.value} identity")
                setattr(account, column, external_id)
                _with_badge(account, badge)
                await session.flush()
                logger.info("auth.identity.linked", extra={"kind": kind.value, "account_id": str(account.id)})
                return ResolvedIdentity(account=account, is_new_account=False)

        values = {
            column: external_id,
            "email": hints.email,
            "display_name": hints.display_name,
            "avatar_url": hints.avatar_url,
            "verified_badges": [badge.value],
        }
        account = await repository.create_account(session, **values)
        logger.info("auth.identity.account_created", extra={"kind": kind.value, "account_id": str(account.id)})
        return ResolvedIdentity(account=account, is_new_account=True)
