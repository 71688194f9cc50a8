"""
Revocation ledger model.

Signed tokens are not natively revocable, so every token invalidated
before its natural expiry is recorded here until that expiry passes.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coachdesk.kernel.models.base import Base, utcnow


class TokenKind(str, Enum):
    """Kinds of signed tokens issued by the session service."""
    ACCESS = "access"
    REFRESH = "refresh"


class RevokedToken(Base):
    """A token invalidated before its natural expiry."""

    __tablename__ = "revoked_tokens"

    # SHA-256 of the exact token string
    token_hash: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    token_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    revoked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    # Copied from the token's own exp claim; purge-eligible afterwards
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_revoked_tokens_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<RevokedToken {self.token_type} user={self.user_id} until={self.expires_at}>"
