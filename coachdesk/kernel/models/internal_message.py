"""
Internal messaging model - conversations between a user and the canonical admin.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from coachdesk.kernel.models.base import Base, utcnow


class InternalMessage(Base):
    """
    Single message in a user <-> admin conversation.

    is_admin is True when the canonical admin is the sender. Only the read
    flag changes after insertion.
    """

    __tablename__ = "internal_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    receiver_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    read: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index(
            "ix_internal_messages_pair_created",
            "sender_id", "receiver_id", "created_at",
        ),
        Index(
            "ix_internal_messages_receiver_unread",
            "receiver_id", "is_admin", "read",
        ),
    )

    def __repr__(self) -> str:
        return f"<InternalMessage {self.id} {self.sender_id}->{self.receiver_id}>"
