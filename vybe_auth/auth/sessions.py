import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from sqlalchemy.ext.asyncio import async_sessionmaker
from vybe_auth.auth import repository
from vybe_auth.auth.constants import REFRESH, logger
from vybe_auth.auth.exceptions import InvalidRefreshToken, InvalidToken, SessionCompromised
from vybe_auth.auth.tokens import TokenCodec
from vybe_auth.cache.session_cache import SessionCache
from vybe_auth.common.utils import as_utc, now


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


def _parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class SessionManager:
    """Creates, rotates and revokes sessions.

    The durable store is the source of truth. The session cache is written
    after every change that affects validity, and a cache miss is always
    checked against the durable store.

    A refresh token is single use. Presenting one that is no longer the
    session's current token (already rotated, or its session is gone) is
    treated as theft and revokes every session of the account.
    """

    def __init__(self, session_maker: async_sessionmaker, cache: SessionCache, codec: TokenCodec,
                 *, max_sessions: int = 5):
        self.session_maker = session_maker
        self.cache = cache
        self.codec = codec
        self.max_sessions = max_sessions

    def _issue_pair(self, account_id, session_id) -> TokenPair:
        return TokenPair(
            access_token=self.codec.issue_access(account_id, session_id),
            refresh_token=self.codec.issue_refresh(account_id, session_id),
            expires_in=self.codec.access_ttl_seconds,
        )

    async def create_session(self, account_id: uuid.UUID, device_type: Optional[str], ip: Optional[str]) -> TokenPair:
        created_at = now()
        expires_at = created_at + timedelta(seconds=self.codec.refresh_ttl_seconds)

        async with self.session_maker() as session:
            # the row must exist before the tokens can embed its id
            row = await repository.insert_session(session, account_id, device_type, ip, expires_at, created_at)
            pair = self._issue_pair(account_id, row.id)
            row.refresh_token_hash = self.codec.hash(pair.refresh_token)
            await repository.touch_last_active(session, account_id, created_at)
            await session.commit()
            session_id = row.id

        await self._cache_if_live(session_id, account_id, self.codec.refresh_ttl_seconds)
        logger.info("auth.session.created", extra={"account_id": str(account_id), "session_id": str(session_id),
                                                   "device_type": device_type})

        await self._evict_excess(account_id)
        return pair

    async def _cache_if_live(self, session_id, account_id, ttl_seconds: int) -> bool:
        """Write the cache entry, then drop it again if the row was deleted meanwhile.

        Revocation deletes the row before its cache entry, so a revoke that
        commits after the re-read removes the entry on its own.
        """
        await self.cache.set(session_id, account_id, ttl_seconds)
        async with self.session_maker() as session:
            row = await repository.get_session_row(session, session_id)
        if row is None:
            await self.cache.delete(session_id)
            logger.info("auth.session.cache_write_retracted", extra={"session_id": str(session_id)})
            return False
        return True

    async def _evict_excess(self, account_id: uuid.UUID) -> None:
        async with self.session_maker() as session:
            ids = await repository.session_ids_for_account(session, account_id)
            excess = ids[self.max_sessions:]
            if not excess:
                return
            await repository.delete_sessions(session, excess)
            await session.commit()

        await self.cache.delete_many(excess)
        logger.info("auth.session.evicted", extra={"account_id": str(account_id), "count": len(excess)})

    async def rotate(self, refresh_token: str, ip: Optional[str]) -> TokenPair:
        try:
            claims = self.codec.verify(refresh_token, REFRESH)
        except InvalidToken as exc:
            logger.warning("auth.refresh.validate_failed", extra={"reason": str(exc)})
            raise InvalidRefreshToken() from exc

        account_id = _parse_uuid(claims.user_id)
        session_id = _parse_uuid(claims.session_id)
        if account_id is None or session_id is None:
            logger.warning("auth.refresh.validate_failed", extra={"reason": "malformed_ids"})
            raise InvalidRefreshToken()

        presented_hash = self.codec.hash(refresh_token)
        current = now()

        async with self.session_maker() as session:
            row = await repository.get_session_row(session, session_id)

            if row is not None and row.account_id == account_id and as_utc(row.expires_at) <= current:
                await repository.delete_session(session, session_id)
                await session.commit()
                await self.cache.delete(session_id)
                logger.warning("auth.refresh.validate_failed", extra={"reason": "session_absolute_expiry",
                                                                     "session_id": str(session_id)})
                raise InvalidRefreshToken("Session expired")

            swapped = False
            pair = None
            if row is not None and row.account_id == account_id:
                pair = self._issue_pair(account_id, session_id)
                new_expiry = current + timedelta(seconds=self.codec.refresh_ttl_seconds)
                swapped = await repository.swap_refresh_hash(
                    session, session_id, presented_hash, self.codec.hash(pair.refresh_token), new_expiry, ip, current
                )
                await session.commit()

        if not swapped:
            logger.error("auth.refresh.reuse_detected", extra={
                "account_id": str(account_id),
                "session_id": str(session_id),
                "session_found": row is not None,
                "security_event": "token_reuse",
            })
            await self.revoke_all(account_id)
            raise SessionCompromised()

        await self._cache_if_live(session_id, account_id, self.codec.refresh_ttl_seconds)
        logger.info("auth.refresh.rotated", extra={"account_id": str(account_id), "session_id": str(session_id)})
        return pair

    async def revoke(self, session_id) -> None:
        sid = _parse_uuid(session_id)
        if sid is None:
            return
        async with self.session_maker() as session:
            deleted = await repository.delete_session(session, sid)
            await session.commit()
        await self.cache.delete(sid)
        logger.info("auth.session.revoked", extra={"session_id": str(sid), "existed": deleted})

    async def revoke_all(self, account_id: uuid.UUID) -> int:
        async with self.session_maker() as session:
            ids = await repository.session_ids_for_account(session, account_id)
            await repository.delete_sessions(session, ids)
            await session.commit()
        await self.cache.delete_many(ids)
        logger.warning("auth.session.revoked_all", extra={"account_id": str(account_id), "count": len(ids)})
        return len(ids)

    async def is_valid(self, session_id) -> bool:
        sid = _parse_uuid(session_id)
        if sid is None:
            return False
        if await self.cache.contains(sid):
            return True

        async with self.session_maker() as session:
            row = await repository.get_session_row(session, sid)
        if row is None:
            return False
        remaining = int((as_utc(row.expires_at) - now()).total_seconds())
        if remaining <= 0:
            return False
        # keep the cache warm; a miss is never proof of invalidity
        return await self._cache_if_live(sid, row.account_id, remaining)

    async def sweep_expired(self) -> int:
        async with self.session_maker() as session:
            count = await repository.delete_expired_sessions(session, now())
            await session.commit()
        if count:
            logger.info("auth.session.swept", extra={"count": count})
        return count
