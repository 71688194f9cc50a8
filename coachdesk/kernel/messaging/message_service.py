"""
Internal messaging between users and the canonical admin.

Every conversation has exactly two parties: one non-admin user and the
canonical admin. The admin id is resolved once per request and injected,
so nothing here trusts a caller-supplied "is admin" flag.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.kernel.errors import ConversationError, NotFoundError
from coachdesk.kernel.models.internal_message import InternalMessage
from coachdesk.kernel.models.user import User, UserRole
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ConversationSummary:
    """One row of the admin inbox."""

    user: User
    last_message_at: Optional[datetime]
    unread_count: int
    last_admin_message_at: Optional[datetime]
    last_admin_message_read: Optional[bool]


@dataclass
class PendingReminder:
    """A user with admin messages left unread past the reminder threshold."""

    user: User
    unread_count: int


class MessageService:
    """
    Conversation operations scoped to one canonical admin.

    Usage:
        admin_id = await CanonicalAdminResolver(db).resolve()
        messages = MessageService(db, admin_id)
        await messages.send(admin_id, 42, "Bonjour")
        await messages.unread_count_for_user(42)
    """

    def __init__(self, session: AsyncSession, admin_id: int):
        self.session = session
        self.admin_id = admin_id

    def _conversation(self, user_id: int):
        """Predicate matching both directions of a user's conversation."""
        return or_(
            and_(
                InternalMessage.sender_id == user_id,
                InternalMessage.receiver_id == self.admin_id,
            ),
            and_(
                InternalMessage.sender_id == self.admin_id,
                InternalMessage.receiver_id == user_id,
            ),
        )

    async def list_conversation(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[InternalMessage], int]:
        """
        Get one page of a conversation, newest first.

        Returns:
            (messages, total_count)
        """
        condition = self._conversation(user_id)

        count_result = await self.session.execute(
            select(func.count(InternalMessage.id)).where(condition)
        )
        total = count_result.scalar() or 0

        # id breaks created_at ties so pages never overlap
        query = (
            select(InternalMessage)
            .where(condition)
            .order_by(InternalMessage.created_at.desc(), InternalMessage.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all(), total

    async def send(self, sender_id: int, receiver_id: int, content: str) -> InternalMessage:
        """
        Store a message.

        The content is trimmed; rejecting blank content is the caller's job.

        Raises:
            ConversationError: if the canonical admin is not exactly one of
                the two parties
            NotFoundError: if the non-admin party does not exist
        """
        if (sender_id == self.admin_id) == (receiver_id == self.admin_id):
            raise ConversationError(
                "A conversation is always between one user and the administrator"
            )

        is_admin = sender_id == self.admin_id
        other_id = receiver_id if is_admin else sender_id
        other = await self.session.get(User, other_id)
        if other is None:
            raise NotFoundError(f"User {other_id} not found")
        if other.is_admin:
            raise ConversationError("Messages between administrators are not supported")

        message = InternalMessage(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content.strip(),
            is_admin=is_admin,
            read=False,
        )
        self.session.add(message)
        await self.session.flush()

        logger.info(
            "Message sent",
            extra={"message_id": message.id, "user_id": other_id, "from_admin": is_admin},
        )
        return message

    async def mark_read_by_admin(self, user_id: int) -> int:
        """Mark the user's unread messages to the admin as read."""
        result = await self.session.execute(
            update(InternalMessage)
            .where(
                InternalMessage.sender_id == user_id,
                InternalMessage.receiver_id == self.admin_id,
                InternalMessage.is_admin.is_(False),
                InternalMessage.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def mark_read_by_user(self, user_id: int) -> int:
        """Mark the admin's unread messages to the user as read."""
        result = await self.session.execute(
            update(InternalMessage)
            .where(
                InternalMessage.sender_id == self.admin_id,
                InternalMessage.receiver_id == user_id,
                InternalMessage.is_admin.is_(True),
                InternalMessage.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def unread_count_for_admin(self) -> int:
        result = await self.session.execute(
            select(func.count(InternalMessage.id)).where(
                InternalMessage.receiver_id == self.admin_id,
                InternalMessage.is_admin.is_(False),
                InternalMessage.read.is_(False),
            )
        )
        return result.scalar() or 0

    async def unread_count_for_user(self, user_id: int) -> int:
        result = await self.session.execute(
            select(func.count(InternalMessage.id)).where(
                InternalMessage.sender_id == self.admin_id,
                InternalMessage.receiver_id == user_id,
                InternalMessage.is_admin.is_(True),
                InternalMessage.read.is_(False),
            )
        )
        return result.scalar() or 0

    async def list_users_with_conversations(self) -> List[ConversationSummary]:
        """
        Admin inbox: every non-admin user, most urgent first.

        Users without any message are included with a null last message
        time. Ordered by unread count desc, last message desc (nulls
        last), then last name and first name.
        """
        last_message_at = (
            select(func.max(InternalMessage.created_at))
            .where(self._conversation(User.id))
            .scalar_subquery()
        )
        unread_count = (
            select(func.count(InternalMessage.id))
            .where(
                InternalMessage.sender_id == User.id,
                InternalMessage.receiver_id == self.admin_id,
                InternalMessage.is_admin.is_(False),
                InternalMessage.read.is_(False),
            )
            .scalar_subquery()
        )
        last_admin = (
            select(InternalMessage.created_at, InternalMessage.read)
            .where(
                InternalMessage.sender_id == self.admin_id,
                InternalMessage.receiver_id == User.id,
            )
            .order_by(InternalMessage.created_at.desc(), InternalMessage.id.desc())
            .limit(1)
        )
        last_admin_at = last_admin.with_only_columns(InternalMessage.created_at).scalar_subquery()
        last_admin_read = last_admin.with_only_columns(InternalMessage.read).scalar_subquery()

        query = (
            select(
                User,
                last_message_at.label("last_message_at"),
                unread_count.label("unread_count"),
                last_admin_at.label("last_admin_message_at"),
                last_admin_read.label("last_admin_message_read"),
            )
            .where(User.role != UserRole.ADMIN.value)
            .order_by(
                unread_count.desc(),
                last_message_at.desc().nulls_last(),
                User.last_name,
                User.first_name,
            )
        )
        result = await self.session.execute(query)

        return [
            ConversationSummary(
                user=row[0],
                last_message_at=row.last_message_at,
                unread_count=row.unread_count or 0,
                last_admin_message_at=row.last_admin_message_at,
                last_admin_message_read=(
                    None if row.last_admin_message_read is None
                    else bool(row.last_admin_message_read)
                ),
            )
            for row in result.all()
        ]

    async def delete_conversation(self, user_id: int) -> int:
        """Delete every message between the user and the admin. Irreversible."""
        result = await self.session.execute(
            delete(InternalMessage)
            .where(self._conversation(user_id))
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0
        logger.info("Conversation deleted", extra={"user_id": user_id, "deleted": deleted})
        return deleted

    async def delete_message(self, message_id: int) -> bool:
        """Delete one message of any admin conversation."""
        result = await self.session.execute(
            delete(InternalMessage)
            .where(
                InternalMessage.id == message_id,
                or_(
                    InternalMessage.sender_id == self.admin_id,
                    InternalMessage.receiver_id == self.admin_id,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def unread_admin_messages_older_than(self, cutoff: datetime) -> List[PendingReminder]:
        """Users holding admin messages that are unread and older than cutoff."""
        query = (
            select(User, func.count(InternalMessage.id).label("unread_count"))
            .join(InternalMessage, InternalMessage.receiver_id == User.id)
            .where(
                InternalMessage.sender_id == self.admin_id,
                InternalMessage.is_admin.is_(True),
                InternalMessage.read.is_(False),
                InternalMessage.created_at < cutoff,
            )
            .group_by(User.id)
            .order_by(User.id)
        )
        result = await self.session.execute(query)
        return [PendingReminder(user=row[0], unread_count=row.unread_count) for row in result.all()]
