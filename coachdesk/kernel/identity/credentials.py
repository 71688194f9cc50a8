"""
Credential manager: password reset tokens.

Reset tokens live on the user row, one at a time, and are consumed with a
single conditional UPDATE so a token can never be used twice.
"""

import secrets
from datetime import datetime, timedelta
from html import escape
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.config import get_settings
from coachdesk.kernel.identity.password import PasswordHasher, get_password_hasher
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.user import User
from coachdesk.logging_config import get_logger
from coachdesk.mailer import Mailer

logger = get_logger(__name__)

RESET_TOKEN_BYTES = 32  # 256 bits, 64 hex chars


class CredentialManager:
    """
    Issues and consumes password reset tokens.

    Both operations answer the same way whether or not the identity
    exists; callers must not branch their responses on it either.
    """

    def __init__(
        self,
        session: AsyncSession,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.hasher = hasher or get_password_hasher()
        self.settings = get_settings()

    async def issue_reset_token(self, email: str) -> Optional[tuple[User, str, datetime]]:
        """
        Generate a reset token for the identity with this email.

        Any previous reset token of that identity is overwritten.

        Returns:
            (user, token, expires_at), or None when no such identity exists
        """
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        user = result.scalar_one_or_none()
        if user is None:
            return None

        token = secrets.token_hex(RESET_TOKEN_BYTES)
        expires_at = utcnow() + timedelta(minutes=self.settings.reset_token_expire_minutes)

        user.reset_token = token
        user.reset_token_expires = expires_at
        await self.session.flush()

        logger.info("Password reset token issued", extra={"user_id": user.id})
        return user, token, expires_at

    async def consume_reset_token(self, token: str, new_password: str) -> bool:
        """
        Set a new password if the token matches and has not expired.

        The hash update and the token clearing happen in one statement.

        Returns:
            True on success, False for an unknown, used or expired token
        """
        if not token:
            return False

        new_hash = self.hasher.hash(new_password)
        result = await self.session.execute(
            update(User)
            .where(
                User.reset_token == token,
                User.reset_token_expires > utcnow(),
            )
            .values(
                password_hash=new_hash,
                reset_token=None,
                reset_token_expires=None,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.info("Password reset rejected: invalid or expired token")
            return False

        logger.info("Password reset completed")
        return True

    def reset_link(self, token: str) -> str:
        base = self.settings.frontend_base_url.rstrip("/")
        return f"{base}/#/reset-password/{token}"

    async def request_password_reset(self, email: str, mailer: Mailer) -> None:
        """
        Issue a token and email the reset link.

        Returns nothing so callers cannot leak whether the email is
        registered. Mail failures are logged by the mailer.
        """
        issued = await self.issue_reset_token(email)
        if issued is None:
            logger.info("Password reset requested for unknown email")
            return

        user, token, _ = issued
        name = escape(user.first_name or user.last_name)
        link = self.reset_link(token)
        await mailer.send_email(
            user.email,
            "Reset your password",
            f"<p>Hello {name},</p>"
            f"<p>Use the link below to choose a new password. It expires in "
            f"{self.settings.reset_token_expire_minutes} minutes.</p>"
            f'<p><a href="{link}">{link}</a></p>',
        )
