"""Unit tests for the revocation ledger."""

from datetime import timedelta

from sqlalchemy import func, select

from coachdesk.kernel.identity.token_store import TokenStore
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.revoked_token import RevokedToken, TokenKind


async def _ledger_size(session) -> int:
    result = await session.execute(select(func.count()).select_from(RevokedToken))
    return result.scalar_one()


class TestTokenStore:

    async def test_revoked_token_is_found(self, db_session):
        store = TokenStore(db_session)
        expires_at = utcnow() + timedelta(minutes=30)

        await store.revoke("token-a", 1, TokenKind.ACCESS, expires_at)

        assert await store.is_revoked("token-a") is True
        assert await store.is_revoked("token-b") is False

    async def test_revoke_is_idempotent(self, db_session):
        store = TokenStore(db_session)
        expires_at = utcnow() + timedelta(minutes=30)

        await store.revoke("token-a", 1, TokenKind.ACCESS, expires_at)
        await store.revoke("token-a", 1, TokenKind.ACCESS, expires_at)
        await db_session.commit()

        assert await _ledger_size(db_session) == 1

    async def test_ledger_stores_hash_not_token(self, db_session):
        store = TokenStore(db_session)

        await store.revoke("token-a", None, TokenKind.REFRESH, utcnow() + timedelta(days=1))
        await db_session.commit()

        result = await db_session.execute(select(RevokedToken.token_hash, RevokedToken.token_type))
        token_hash, token_type = result.one()
        assert token_hash != "token-a"
        assert len(token_hash) == 64
        assert token_type == "refresh"

    async def test_purge_removes_only_expired_entries(self, db_session):
        store = TokenStore(db_session)
        now = utcnow()

        await store.revoke("old-1", 1, TokenKind.ACCESS, now - timedelta(minutes=1))
        await store.revoke("old-2", 1, TokenKind.REFRESH, now - timedelta(days=1))
        await store.revoke("live", 1, TokenKind.ACCESS, now + timedelta(minutes=10))
        await db_session.commit()

        removed = await store.purge_expired()
        await db_session.commit()

        assert removed == 2
        assert await store.is_revoked("live") is True
        assert await store.is_revoked("old-1") is False
        assert await _ledger_size(db_session) == 1
