"""
Revocation ledger backed by the revoked_tokens table.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.kernel.identity.jwt import JWTManager
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.revoked_token import RevokedToken, TokenKind
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)

# Dialects with INSERT ... ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TokenStore:
    """
    Durable denylist of tokens invalidated before their natural expiry.

    Entries are keyed by the SHA-256 of the exact token string and carry
    the token's own expiry, so the ledger only ever holds tokens that would
    otherwise still verify.

    Usage:
        store = TokenStore(session)
        if await store.is_revoked(token):
            ...
        await store.revoke(token, user_id=7, kind=TokenKind.ACCESS, expires_at=exp)
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_revoked(self, token: str) -> bool:
        """Point lookup by exact token."""
        query = select(RevokedToken.token_hash).where(
            RevokedToken.token_hash == JWTManager.hash_token(token)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def revoke(
        self,
        token: str,
        user_id: Optional[int],
        kind: TokenKind,
        expires_at: datetime,
    ) -> None:
        """
        Record a revocation.

        Idempotent: revoking an already-revoked token leaves the existing
        entry as it is and does not raise, even when two requests race.
        """
        values = {
            "token_hash": JWTManager.hash_token(token),
            "user_id": user_id,
            "token_type": kind.value,
            "revoked_at": utcnow(),
            "expires_at": expires_at,
        }

        dialect = self.session.get_bind().dialect.name
        insert_fn = _UPSERT_INSERTS.get(dialect)
        if insert_fn is not None:
            stmt = insert_fn(RevokedToken).values(**values).on_conflict_do_nothing(
                index_elements=[RevokedToken.token_hash]
            )
            result = await self.session.execute(stmt)
            inserted = bool(result.rowcount)
        else:
            existing = await self.session.get(RevokedToken, values["token_hash"])
            inserted = existing is None
            if inserted:
                self.session.add(RevokedToken(**values))
                await self.session.flush()

        if inserted:
            logger.info(
                "Token revoked",
                extra={"user_id": user_id, "token_type": kind.value},
            )

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Delete every entry whose expiry has passed.

        Runs from the scheduler, never from a request handler.

        Returns:
            Number of entries removed
        """
        cutoff = now or utcnow()
        result = await self.session.execute(
            delete(RevokedToken).where(RevokedToken.expires_at < cutoff)
        )
        return result.rowcount or 0
