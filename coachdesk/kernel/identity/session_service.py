"""
Session lifecycle: issuing, verifying, refreshing and revoking tokens.

Verification order matters. The revocation ledger is consulted before the
signature, so a structurally valid token that was revoked inside its
natural lifetime is rejected as TOKEN_REVOKED, not accepted.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.kernel.errors import AuthenticationError, AuthFailure
from coachdesk.kernel.identity.jwt import JWTManager, TokenPair, get_jwt_manager
from coachdesk.kernel.identity.password import PasswordHasher, get_password_hasher
from coachdesk.kernel.identity.token_store import TokenStore
from coachdesk.kernel.models.revoked_token import TokenKind
from coachdesk.kernel.models.user import User, UserRole
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)


class IdentityClaim(BaseModel):
    """Verified identity attached to the request."""

    user_id: int
    email: str
    role: str
    token_id: str
    expires_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class SessionService:
    """
    Token lifecycle for one request.

    Usage:
        sessions = SessionService(db)
        claim = await sessions.verify(token)
        pair = sessions.issue_token_pair(user)
        await sessions.logout(access_token, refresh_token)
    """

    def __init__(
        self,
        session: AsyncSession,
        jwt_manager: Optional[JWTManager] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.jwt_manager = jwt_manager or get_jwt_manager()
        self.hasher = hasher or get_password_hasher()
        self.token_store = TokenStore(session)

    # Issuance (stateless)

    def issue_access_token(self, user: User) -> tuple[str, datetime]:
        token, expires_at, _ = self.jwt_manager.create_access_token(
            user.id, user.email, user.role
        )
        return token, expires_at

    def issue_refresh_token(self, user: User) -> tuple[str, datetime]:
        token, expires_at, _ = self.jwt_manager.create_refresh_token(
            user.id, user.email, user.role
        )
        return token, expires_at

    def issue_token_pair(self, user: User) -> TokenPair:
        return self.jwt_manager.create_token_pair(user.id, user.email, user.role)

    @staticmethod
    def seconds_until(moment: datetime) -> int:
        return max(0, int((moment - datetime.now(timezone.utc)).total_seconds()))

    # Verification

    async def verify(
        self,
        token: Optional[str],
        kind: TokenKind = TokenKind.ACCESS,
    ) -> IdentityClaim:
        """
        Verify a presented token.

        Raises:
            AuthenticationError: with the reason code of the first failed check
        """
        if not token:
            raise AuthenticationError(AuthFailure.TOKEN_MISSING)

        if await self.token_store.is_revoked(token):
            raise AuthenticationError(AuthFailure.TOKEN_REVOKED)

        payload = self.jwt_manager.decode(token, kind)
        return IdentityClaim(
            user_id=payload.user_id,
            email=payload.email,
            role=payload.role,
            token_id=payload.jti,
            expires_at=payload.exp,
        )

    async def refresh(self, refresh_token: Optional[str]) -> tuple[User, str, datetime]:
        """
        Mint a new access token from a refresh token.

        The refresh token itself is not rotated. If its identity no longer
        exists the token is revoked so it stops verifying right away.

        Returns:
            (user, access_token, access_expires_at)

        Raises:
            AuthenticationError: if the refresh token fails verification or
                its identity is gone
        """
        claim = await self.verify(refresh_token, TokenKind.REFRESH)

        result = await self.session.execute(select(User).where(User.id == claim.user_id))
        user = result.scalar_one_or_none()
        if user is None:
            await self.token_store.revoke(
                refresh_token,
                user_id=claim.user_id,
                kind=TokenKind.REFRESH,
                expires_at=claim.expires_at,
            )
            logger.warning(
                "Refresh rejected: identity no longer exists",
                extra={"user_id": claim.user_id},
            )
            raise AuthenticationError(AuthFailure.TOKEN_INVALID)

        # Current email/role, not the ones frozen into the refresh token
        access_token, expires_at = self.issue_access_token(user)
        return user, access_token, expires_at

    # Revocation

    async def revoke(
        self,
        token: str,
        user_id: Optional[int],
        kind: TokenKind,
        expires_at: datetime,
    ) -> None:
        await self.token_store.revoke(token, user_id, kind, expires_at)

    async def _revoke_one(
        self,
        token: Optional[str],
        kind: TokenKind,
        user_id: Optional[int],
    ) -> bool:
        if not token:
            return False

        entry = self.jwt_manager.revocation_entry(token, kind)
        if entry is None:
            # Not signed by us for this kind, so it can never authenticate
            logger.info("Skipping revocation of foreign token", extra={"token_type": kind.value})
            return False

        owner, expires_at = entry
        await self.token_store.revoke(token, user_id if user_id is not None else owner, kind, expires_at)
        return True

    async def revoke_presented(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        user_id: Optional[int] = None,
    ) -> int:
        """
        Revoke whichever of the presented tokens this service signed.

        Expired tokens are still recorded. Forged or undecodable ones are
        skipped, so logout never fails on them.

        Returns:
            Number of tokens recorded
        """
        revoked = 0
        if await self._revoke_one(access_token, TokenKind.ACCESS, user_id):
            revoked += 1
        if await self._revoke_one(refresh_token, TokenKind.REFRESH, user_id):
            revoked += 1
        return revoked

    async def logout(self, access_token: Optional[str], refresh_token: Optional[str]) -> None:
        revoked = await self.revoke_presented(access_token, refresh_token)
        logger.info("Logout", extra={"tokens_revoked": revoked})

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        access_token: Optional[str],
        refresh_token: Optional[str],
    ) -> bool:
        """
        Change the password and end the calling session.

        Only the tokens presented with this request are revoked; sessions
        opened elsewhere stay valid until they expire.

        Returns:
            True if changed, False if the current password is wrong
        """
        if not self.hasher.verify(current_password, user.password_hash):
            logger.info("Password change rejected", extra={"user_id": user.id})
            return False

        user.password_hash = self.hasher.hash(new_password)
        await self.session.flush()

        await self.revoke_presented(access_token, refresh_token, user_id=user.id)
        logger.info("Password changed", extra={"user_id": user.id})
        return True
