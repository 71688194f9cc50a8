"""
Scheduled maintenance jobs.

Each job opens its own session, runs outside any request and only touches
rows selected by an expiry or timestamp predicate, so it is safe to run
alongside live traffic. Scheduling itself is left to cron (see
scripts/run_job.py).
"""

from datetime import timedelta
from html import escape
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coachdesk.config import get_settings
from coachdesk.database import async_session_maker
from coachdesk.kernel.accounts.booking_service import TYPE_LABELS, format_slot_time
from coachdesk.kernel.identity.token_store import TokenStore
from coachdesk.kernel.messaging import CanonicalAdminResolver, MessageService
from coachdesk.kernel.models.base import utcnow
from coachdesk.kernel.models.coaching import Appointment, AppointmentStatus, TimeSlot
from coachdesk.kernel.models.user import User
from coachdesk.logging_config import get_logger
from coachdesk.mailer import Mailer, get_mailer

logger = get_logger(__name__)

# Reminder windows and the flag recording that each one was sent
REMINDER_FLAGS = {
    24: "reminder_sent_24h",
    2: "reminder_sent_2h",
}


async def purge_revoked_tokens(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """Delete revocation entries whose token has expired anyway."""
    factory = session_factory or async_session_maker
    async with factory() as session:
        removed = await TokenStore(session).purge_expired()
        await session.commit()

    logger.info("Revoked token purge finished", extra={"removed": removed})
    return removed


async def send_unread_message_reminders(
    older_than_hours: Optional[int] = None,
    mailer: Optional[Mailer] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """
    Email every user holding admin messages unread for too long.

    One email per user, whatever the number of messages. A failed email
    is logged and the remaining users are still processed.

    Returns:
        Number of reminders sent
    """
    settings = get_settings()
    hours = older_than_hours or settings.unread_reminder_hours
    mailer = mailer or get_mailer()
    factory = session_factory or async_session_maker

    async with factory() as session:
        admin_id = await CanonicalAdminResolver(session).resolve()
        pending = await MessageService(session, admin_id).unread_admin_messages_older_than(
            utcnow() - timedelta(hours=hours)
        )

    sent = 0
    for reminder in pending:
        user = reminder.user
        ok = await mailer.send_email(
            user.email,
            f"You have {reminder.unread_count} unread message(s)",
            f"<p>Hello {escape(user.display_name)},</p>"
            f"<p>You have {reminder.unread_count} unread message(s) from your coach. "
            f'<a href="{settings.frontend_base_url.rstrip("/")}/#/messages">Read them</a>.</p>',
        )
        if ok:
            sent += 1
        else:
            logger.warning("Unread reminder not delivered", extra={"user_id": user.id})

    logger.info(
        "Unread message reminders finished",
        extra={"candidates": len(pending), "sent": sent},
    )
    return sent


async def send_appointment_reminders(
    hours_before: int,
    mailer: Optional[Mailer] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> int:
    """
    Remind users of scheduled appointments starting within hours_before.

    Only the 24 h and 2 h windows exist. Each sets its own flag on the
    appointment once the user's email was delivered, so every reminder
    goes out at most once.

    Returns:
        Number of reminders sent

    Raises:
        ValueError: for any other window
    """
    flag = REMINDER_FLAGS.get(hours_before)
    if flag is None:
        raise ValueError(f"No reminder window of {hours_before}h")

    settings = get_settings()
    mailer = mailer or get_mailer()
    factory = session_factory or async_session_maker
    flag_column = getattr(Appointment, flag)

    now = utcnow()
    sent = 0
    async with factory() as session:
        result = await session.execute(
            select(Appointment, TimeSlot, User)
            .join(TimeSlot, Appointment.time_slot_id == TimeSlot.id)
            .join(User, Appointment.user_id == User.id)
            .where(
                Appointment.status == AppointmentStatus.SCHEDULED.value,
                flag_column.is_(False),
                TimeSlot.start_datetime >= now,
                TimeSlot.start_datetime <= now + timedelta(hours=hours_before),
            )
            .order_by(TimeSlot.start_datetime)
        )

        for appointment, slot, user in result.all():
            label = TYPE_LABELS.get(appointment.type, appointment.type)
            when = format_slot_time(slot.start_datetime)
            name = escape(user.display_name)

            ok = await mailer.send_email(
                user.email,
                f"Reminder: your {label} appointment on {when}",
                f"<p>Hello {name},</p><p>This is a reminder of your {label} "
                f"appointment on {when}.</p>",
            )
            if not ok:
                logger.warning(
                    "Appointment reminder not delivered",
                    extra={"appointment_id": appointment.id},
                )
                continue

            if settings.admin_notification_email:
                await mailer.send_email(
                    settings.admin_notification_email,
                    f"Upcoming {label} appointment with {user.display_name}",
                    f"<p>{name} ({escape(user.email)}) has a {label} appointment on {when}.</p>",
                )

            setattr(appointment, flag, True)
            sent += 1

        await session.commit()

    logger.info(
        "Appointment reminders finished",
        extra={"hours_before": hours_before, "sent": sent},
    )
    return sent


JOBS = {
    "purge-tokens": purge_revoked_tokens,
    "unread-reminders": send_unread_message_reminders,
    "reminders-24h": lambda: send_appointment_reminders(24),
    "reminders-2h": lambda: send_appointment_reminders(2),
}
