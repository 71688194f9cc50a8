"""
Account-level admin operations that span several tables.
"""

from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.database import transaction
from coachdesk.kernel.errors import NotFoundError
from coachdesk.kernel.messaging.admin_resolver import CanonicalAdminResolver
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.coaching import (
    Appointment,
    AppointmentStatus,
    Document,
    FormSubmission,
    SlotStatus,
    TimeSlot,
    VisioLink,
)
from coachdesk.kernel.models.internal_message import InternalMessage
from coachdesk.kernel.models.user import Profile, User
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)


class AccountService:
    """
    Account deletion and visio link management.

    Each public method is one transaction.
    """

    def __init__(
        self,
        session: AsyncSession,
        resolver: Optional[CanonicalAdminResolver] = None,
    ):
        self.session = session
        self.resolver = resolver

    async def delete_user(self, user_id: int) -> None:
        """
        Delete a user and every row that depends on it.

        Slots held by the user's scheduled appointments are released.
        Revocation ledger entries are kept; they expire on their own.

        Raises:
            NotFoundError: if the user does not exist
        """
        async with transaction(self.session):
            user = await self.session.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            was_admin = user.is_admin

            held_slots = select(Appointment.time_slot_id).where(
                Appointment.user_id == user_id,
                Appointment.status == AppointmentStatus.SCHEDULED.value,
            )
            await self.session.execute(
                update(TimeSlot)
                .where(TimeSlot.id.in_(held_slots))
                .values(status=SlotStatus.AVAILABLE.value, updated_at=utcnow())
            )

            for model in (Appointment, FormSubmission, Document, VisioLink, Profile):
                await self.session.execute(delete(model).where(model.user_id == user_id))
            await self.session.execute(
                delete(InternalMessage)
                .where(
                    or_(
                        InternalMessage.sender_id == user_id,
                        InternalMessage.receiver_id == user_id,
                    )
                )
            )
            await self.session.execute(delete(User).where(User.id == user_id))

        if was_admin and self.resolver is not None:
            self.resolver.invalidate()
        logger.info("User deleted", extra={"user_id": user_id, "was_admin": was_admin})

    async def set_visio_link(self, user_id: int, visio_url: str) -> VisioLink:
        """
        Replace the user's active visio link.

        Raises:
            NotFoundError: if the user does not exist
        """
        async with transaction(self.session):
            user = await self.session.get(User, user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")

            await self.session.execute(
                update(VisioLink)
                .where(VisioLink.user_id == user_id, VisioLink.is_active.is_(True))
                .values(is_active=False, updated_at=utcnow())
            )
            link = VisioLink(user_id=user_id, visio_url=visio_url.strip(), is_active=True)
            self.session.add(link)
            await self.session.flush()

        logger.info("Visio link activated", extra={"user_id": user_id, "visio_id": link.id})
        return link

    async def deactivate_visio_link(self, user_id: int) -> int:
        """
        Deactivate the user's active visio link, if any.

        Returns:
            Number of links deactivated (0 is not an error)
        """
        async with transaction(self.session):
            result = await self.session.execute(
                update(VisioLink)
                .where(VisioLink.user_id == user_id, VisioLink.is_active.is_(True))
                .values(is_active=False, updated_at=utcnow())
            )
        return result.rowcount or 0

    async def get_active_visio_link(self, user_id: int) -> Optional[VisioLink]:
        result = await self.session.execute(
            select(VisioLink)
            .where(VisioLink.user_id == user_id, VisioLink.is_active.is_(True))
            .order_by(VisioLink.created_at.desc(), VisioLink.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
