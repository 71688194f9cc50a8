"""
Time slots and appointment booking.

Booking and cancelling each touch several tables and run inside one
transaction. Confirmation mail goes out only after the commit and can
never undo a booking.
"""

from datetime import datetime
from html import escape
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.config import get_settings
from coachdesk.database import transaction
from coachdesk.kernel.errors import NotFoundError, SlotUnavailableError
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.coaching import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    SlotStatus,
    TimeSlot,
)
from coachdesk.kernel.models.user import Profile, User
from coachdesk.logging_config import get_logger
from coachdesk.mailer import Mailer

logger = get_logger(__name__)

# Profile progress column completed by each appointment type
PROGRESS_COLUMNS = {
    AppointmentType.PHONE.value: Profile.progression_rdv_phone,
    AppointmentType.STRATEGY.value: Profile.progression_rdv_strategy,
}

TYPE_LABELS = {
    AppointmentType.PHONE.value: "phone",
    AppointmentType.STRATEGY.value: "strategy",
}


def format_slot_time(start: datetime) -> str:
    return start.strftime("%d/%m/%Y %H:%M")


class BookingService:
    """
    Slot publication, booking and cancellation.

    Usage:
        bookings = BookingService(db, mailer)
        appointment = await bookings.book_slot(user, slot_id)
    """

    def __init__(self, session: AsyncSession, mailer: Optional[Mailer] = None):
        self.session = session
        self.mailer = mailer
        self.settings = get_settings()

    async def create_time_slot(
        self,
        start: datetime,
        end: datetime,
        slot_type: AppointmentType,
    ) -> TimeSlot:
        """
        Publish a bookable slot.

        Raises:
            ValueError: if the slot ends before it starts
        """
        if end <= start:
            raise ValueError("A time slot must end after it starts")

        slot = TimeSlot(
            start_datetime=start,
            end_datetime=end,
            type=slot_type.value,
            status=SlotStatus.AVAILABLE.value,
        )
        self.session.add(slot)
        await self.session.flush()
        logger.info("Time slot created", extra={"slot_id": slot.id, "slot_type": slot.type})
        return slot

    async def list_available_slots(self, after: Optional[datetime] = None) -> Sequence[TimeSlot]:
        """Available slots starting after the given time (default: now), soonest first."""
        query = (
            select(TimeSlot)
            .where(
                TimeSlot.status == SlotStatus.AVAILABLE.value,
                TimeSlot.start_datetime > (after or utcnow()),
            )
            .order_by(TimeSlot.start_datetime, TimeSlot.id)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def book_slot(
        self,
        user: User,
        slot_id: int,
        appointment_type: Optional[AppointmentType] = None,
    ) -> Appointment:
        """
        Book a slot for a user.

        Marks the slot booked, creates the appointment and completes the
        matching progress step, all or nothing.

        Raises:
            SlotUnavailableError: if the slot does not exist or is taken
        """
        async with transaction(self.session):
            result = await self.session.execute(
                select(TimeSlot).where(TimeSlot.id == slot_id).with_for_update()
            )
            slot = result.scalar_one_or_none()
            if slot is None or slot.status != SlotStatus.AVAILABLE.value:
                raise SlotUnavailableError("Time slot unavailable or does not exist")

            # Conditional update: a concurrent booking of the same slot matches 0 rows
            claimed = await self.session.execute(
                update(TimeSlot)
                .where(
                    TimeSlot.id == slot_id,
                    TimeSlot.status == SlotStatus.AVAILABLE.value,
                )
                .values(status=SlotStatus.BOOKED.value, updated_at=utcnow())
            )
            if claimed.rowcount != 1:
                raise SlotUnavailableError("Time slot unavailable or does not exist")

            kind = appointment_type.value if appointment_type else slot.type
            appointment = Appointment(
                user_id=user.id,
                time_slot_id=slot.id,
                type=kind,
                status=AppointmentStatus.SCHEDULED.value,
            )
            self.session.add(appointment)

            progress_column = PROGRESS_COLUMNS.get(kind)
            if progress_column is not None:
                await self.session.execute(
                    update(Profile)
                    .where(Profile.user_id == user.id)
                    .values({progress_column.key: 100})
                )
            await self.session.flush()

        logger.info(
            "Appointment booked",
            extra={"appointment_id": appointment.id, "user_id": user.id, "slot_id": slot_id},
        )
        await self._notify_booked(user, slot, kind)
        return appointment

    async def cancel_appointment(
        self,
        appointment_id: int,
        user: Optional[User] = None,
    ) -> Appointment:
        """
        Cancel an appointment and free its slot.

        Args:
            appointment_id: The appointment to cancel
            user: The owner; None when an admin cancels

        Raises:
            NotFoundError: if the appointment does not exist or belongs to
                someone else
            ValueError: if it is already cancelled
        """
        async with transaction(self.session):
            query = select(Appointment).where(Appointment.id == appointment_id)
            if user is not None:
                query = query.where(Appointment.user_id == user.id)
            result = await self.session.execute(query.with_for_update())
            appointment = result.scalar_one_or_none()
            if appointment is None:
                raise NotFoundError("Appointment not found")
            if appointment.status == AppointmentStatus.CANCELLED.value:
                raise ValueError("Appointment already cancelled")

            appointment.status = AppointmentStatus.CANCELLED.value
            await self.session.execute(
                update(TimeSlot)
                .where(TimeSlot.id == appointment.time_slot_id)
                .values(status=SlotStatus.AVAILABLE.value, updated_at=utcnow())
            )
            await self.session.flush()
            slot = await self.session.get(TimeSlot, appointment.time_slot_id)
            owner = user or await self.session.get(User, appointment.user_id)

        logger.info("Appointment cancelled", extra={"appointment_id": appointment.id})
        await self._notify_cancelled(owner, slot, appointment.type)
        return appointment

    async def _notify_booked(self, user: User, slot: TimeSlot, kind: str) -> None:
        if self.mailer is None:
            return

        label = TYPE_LABELS.get(kind, kind)
        when = format_slot_time(slot.start_datetime)
        name = escape(user.display_name)
        await self.mailer.send_email(
            user.email,
            f"Your {label} appointment is confirmed",
            f"<p>Hello {name},</p><p>Your {label} appointment on {when} is confirmed.</p>",
        )
        if self.settings.admin_notification_email:
            await self.mailer.send_email(
                self.settings.admin_notification_email,
                f"New {label} appointment",
                f"<p>{name} ({escape(user.email)}) booked a {label} appointment on {when}.</p>",
            )

    async def _notify_cancelled(self, user: Optional[User], slot: Optional[TimeSlot], kind: str) -> None:
        if self.mailer is None or not self.settings.admin_notification_email:
            return
        if user is None or slot is None:
            return

        label = TYPE_LABELS.get(kind, kind)
        await self.mailer.send_email(
            self.settings.admin_notification_email,
            f"Cancelled {label} appointment",
            f"<p>{escape(user.display_name)} cancelled the {label} appointment on "
            f"{format_slot_time(slot.start_datetime)}.</p>",
        )
