import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from vybe_auth.auth.constants import PENDING_REFRESH_HASH
from vybe_auth.schema import Account, UserSession

# columns an external identity may be looked up by
IDENTIFIER_COLUMNS = {
    "phone": Account.phone,
    "email": Account.email,
    "google_id": Account.google_id,
    "apple_id": Account.apple_id,
}


async def account_by_identifier(session: AsyncSession, column: str, value: str) -> Optional[Account]:
    stmt = select(Account).where(IDENTIFIER_COLUMNS[column] == value)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_account(session: AsyncSession, **values) -> Account:
    account = Account(**values)
    session.add(account)
    await session.flush()
    return account


async def touch_last_active(session: AsyncSession, account_id: uuid.UUID, at: datetime):
    stmt = update(Account).where(Account.id == account_id).values(last_active_at=at)
    await session.execute(stmt)


async def insert_session(session: AsyncSession, account_id: uuid.UUID, device_type: Optional[str],
                         ip: Optional[str], expires_at: datetime, created_at: datetime) -> UserSession:
    row = UserSession(
        account_id=account_id,
        refresh_token_hash=PENDING_REFRESH_HASH,
        device_type=device_type,
        ip_address=ip,
        expires_at=expires_at,
        created_at=created_at,
    )
    session.add(row)
    await session.flush()
    return row


async def get_session_row(session: AsyncSession, session_id: uuid.UUID) -> Optional[UserSession]:
    stmt = select(UserSession).where(UserSession.id == session_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def swap_refresh_hash(session: AsyncSession, session_id: uuid.UUID, expected_hash: str, new_hash: str,
                            expires_at: datetime, ip: Optional[str], now: datetime) -> bool:
    """Compare-and-swap the refresh hash; False when the presented hash is no longer current."""
    stmt = (
        update(UserSession)
        .where(
            UserSession.id == session_id,
            UserSession.refresh_token_hash == expected_hash,
            UserSession.expires_at > now,
        )
        .values(refresh_token_hash=new_hash, expires_at=expires_at, ip_address=ip)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def delete_session(session: AsyncSession, session_id: uuid.UUID) -> bool:
    stmt = delete(UserSession).where(UserSession.id == session_id).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    return result.rowcount > 0


async def delete_sessions(session: AsyncSession, session_ids: List[uuid.UUID]) -> int:
    if not session_ids:
        return 0
    stmt = delete(UserSession).where(UserSession.id.in_(session_ids)).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    return result.rowcount


async def session_ids_for_account(session: AsyncSession, account_id: uuid.UUID) -> List[uuid.UUID]:
    """Newest first; ties on creation time fall back to the time-ordered id."""
    stmt = (
        select(UserSession.id)
        .where(UserSession.account_id == account_id)
        .order_by(UserSession.created_at.desc(), UserSession.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_expired_sessions(session: AsyncSession, now: datetime) -> int:
    stmt = delete(UserSession).where(UserSession.expires_at <= now).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    return result.rowcount
