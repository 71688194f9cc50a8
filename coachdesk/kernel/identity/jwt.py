"""
JWT token management for authentication.

Access and refresh tokens are signed with different secrets so one can
never be replayed as the other. Claims are keyed by the numeric user id;
email and role travel along for convenience only.
"""

import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from coachdesk.config import get_settings
from coachdesk.kernel.errors import AuthenticationError, AuthFailure
from coachdesk.kernel.models.revoked_token import TokenKind


class TokenPayload(BaseModel):
    """Verified JWT payload."""

    sub: str  # User ID
    email: str
    role: str
    type: TokenKind
    exp: datetime
    iat: datetime
    jti: str  # Token ID, keeps tokens minted in the same second distinct

    @property
    def user_id(self) -> int:
        return int(self.sub)


class TokenPair(BaseModel):
    """Access and refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires


class JWTManager:
    """
    JWT token creation and verification.

    Handles access tokens (short-lived) and refresh tokens (long-lived).
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        refresh_secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        refresh_token_expire_days: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.refresh_secret_key = refresh_secret_key or settings.refresh_secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )
        self.refresh_token_expire_days = (
            refresh_token_expire_days or settings.refresh_token_expire_days
        )

    def _key_for(self, kind: TokenKind) -> str:
        return self.secret_key if kind == TokenKind.ACCESS else self.refresh_secret_key

    def _encode(
        self,
        kind: TokenKind,
        user_id: int,
        email: str,
        role: str,
        lifetime: timedelta,
    ) -> tuple[str, datetime, str]:
        now = datetime.now(timezone.utc)
        expire = now + lifetime
        jti = str(uuid.uuid4())

        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "exp": expire,
            "iat": now,
            "jti": jti,
            "type": kind.value,
        }

        token = jwt.encode(payload, self._key_for(kind), algorithm=self.algorithm)
        return token, expire, jti

    def create_access_token(
        self,
        user_id: int,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new access token.

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        lifetime = expires_delta or self.lifetime_of(TokenKind.ACCESS)
        return self._encode(TokenKind.ACCESS, user_id, email, role, lifetime)

    def create_refresh_token(
        self,
        user_id: int,
        email: str,
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Create a new refresh token.

        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        lifetime = expires_delta or self.lifetime_of(TokenKind.REFRESH)
        return self._encode(TokenKind.REFRESH, user_id, email, role, lifetime)

    def create_token_pair(self, user_id: int, email: str, role: str) -> TokenPair:
        """Create both access and refresh tokens."""
        access_token, access_exp, _ = self.create_access_token(user_id, email, role)
        refresh_token, _, _ = self.create_refresh_token(user_id, email, role)

        expires_in = int((access_exp - datetime.now(timezone.utc)).total_seconds())

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
        )

    def decode(self, token: str, kind: TokenKind = TokenKind.ACCESS) -> TokenPayload:
        """
        Verify signature, expiry and token type.

        Raises:
            AuthenticationError: TOKEN_EXPIRED when exp has passed,
                TOKEN_INVALID for anything else that fails verification.
        """
        try:
            payload = jwt.decode(
                token,
                self._key_for(kind),
                algorithms=[self.algorithm],
            )
        except ExpiredSignatureError:
            raise AuthenticationError(AuthFailure.TOKEN_EXPIRED)
        except JWTError:
            raise AuthenticationError(AuthFailure.TOKEN_INVALID)

        if payload.get("type") != kind.value:
            raise AuthenticationError(AuthFailure.TOKEN_INVALID)

        try:
            int(payload["sub"])
            verified = TokenPayload(
                sub=payload["sub"],
                email=payload["email"],
                role=payload["role"],
                type=TokenKind(payload["type"]),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                jti=payload["jti"],
            )
        except (KeyError, TypeError, ValueError, OverflowError):
            raise AuthenticationError(AuthFailure.TOKEN_INVALID)

        return verified

    def lifetime_of(self, kind: TokenKind) -> timedelta:
        if kind == TokenKind.ACCESS:
            return timedelta(minutes=self.access_token_expire_minutes)
        return timedelta(days=self.refresh_token_expire_days)

    def revocation_entry(
        self, token: str, kind: TokenKind
    ) -> Optional[tuple[Optional[int], datetime]]:
        """
        Read (user_id, expires_at) for the revocation ledger.

        The signature and type are checked, expiry is not: an expired token
        of ours may still be revoked. Tokens not signed by this service for
        ``kind`` return None. The expiry is capped at one full lifetime from
        now, so every ledger row becomes purgeable.
        """
        try:
            payload = jwt.decode(
                token,
                self._key_for(kind),
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        if payload.get("type") != kind.value:
            return None

        cap = datetime.now(timezone.utc) + self.lifetime_of(kind)
        try:
            exp = min(float(payload["exp"]), cap.timestamp())
            expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        except (KeyError, TypeError, ValueError, OverflowError, OSError):
            return None

        try:
            user_id: Optional[int] = int(payload.get("sub"))
        except (TypeError, ValueError):
            user_id = None
        return user_id, expires_at

    @staticmethod
    def hash_token(token: str) -> str:
        """
        SHA-256 of a token, used as the revocation ledger key.

        Args:
            token: The token to hash

        Returns:
            Hex digest of the token
        """
        return hashlib.sha256(token.encode()).hexdigest()


# Default manager instance
_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager
