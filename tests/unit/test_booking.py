"""Unit tests for slot booking, cancellation and account deletion."""

from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from coachdesk.database import transaction
from coachdesk.kernel.accounts import AccountService, BookingService
from coachdesk.kernel.errors import NotFoundError, SlotUnavailableError
from coachdesk.kernel.messaging import CanonicalAdminResolver, MessageService
from coachdesk.kernel.models import (
    Appointment,
    AppointmentType,
    Document,
    InternalMessage,
    Profile,
    SlotStatus,
    TimeSlot,
    User,
    UserRole,
    VisioLink,
)
from coachdesk.kernel.models.base import utcnow


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
def bookings(db_session, mailer) -> BookingService:
    return BookingService(db_session, mailer)


@pytest_asyncio.fixture
async def slot(db_session) -> TimeSlot:
    start = utcnow() + timedelta(days=3)
    slot = await BookingService(db_session).create_time_slot(
        start, start + timedelta(hours=1), AppointmentType.PHONE
    )
    await db_session.commit()
    return slot


class TestTimeSlots:

    async def test_end_must_follow_start(self, bookings):
        start = utcnow() + timedelta(days=1)

        with pytest.raises(ValueError):
            await bookings.create_time_slot(start, start, AppointmentType.PHONE)

    async def test_only_future_available_slots_are_listed(self, bookings, db_session, slot):
        past_start = utcnow() - timedelta(days=1)
        await bookings.create_time_slot(past_start, past_start + timedelta(hours=1), AppointmentType.PHONE)
        await db_session.commit()

        assert [s.id for s in await bookings.list_available_slots()] == [slot.id]


class TestBooking:

    async def test_book_slot(self, bookings, db_session, mailer, test_user, slot):
        appointment = await bookings.book_slot(test_user, slot.id)

        assert appointment.type == AppointmentType.PHONE.value
        assert appointment.status == "scheduled"
        await db_session.refresh(slot)
        assert slot.status == SlotStatus.BOOKED.value

        profile = (
            await db_session.execute(select(Profile).where(Profile.user_id == test_user.id))
        ).scalar_one()
        await db_session.refresh(profile)
        assert profile.progression_rdv_phone == 100
        assert profile.progression_rdv_strategy == 0

        assert len(mailer.sent_to(test_user.email)) == 1
        assert len(mailer.sent_to("coach@example.com")) == 1

    async def test_booked_slot_cannot_be_booked_again(self, bookings, db_session, make_user, test_user, slot):
        other = await make_user("other@example.com")
        await bookings.book_slot(test_user, slot.id)

        with pytest.raises(SlotUnavailableError):
            await bookings.book_slot(other, slot.id)

        assert await _count(db_session, Appointment) == 1

    async def test_unknown_slot(self, bookings, test_user):
        with pytest.raises(SlotUnavailableError):
            await bookings.book_slot(test_user, 9999)

    async def test_mail_failure_keeps_booking(self, db_session, mailer_factory, test_user, slot):
        failing = mailer_factory(fail_for=[test_user.email])

        appointment = await BookingService(db_session, failing).book_slot(test_user, slot.id)

        assert appointment.id is not None
        assert await _count(db_session, Appointment) == 1

    async def test_cancel_frees_slot(self, bookings, db_session, mailer, test_user, slot):
        appointment = await bookings.book_slot(test_user, slot.id)

        cancelled = await bookings.cancel_appointment(appointment.id, user=test_user)

        assert cancelled.status == "cancelled"
        await db_session.refresh(slot)
        assert slot.status == SlotStatus.AVAILABLE.value
        assert any(m["subject"].startswith("Cancelled") for m in mailer.sent_to("coach@example.com"))

        with pytest.raises(ValueError):
            await bookings.cancel_appointment(appointment.id, user=test_user)

    async def test_cannot_cancel_someone_elses_appointment(self, bookings, make_user, test_user, slot):
        other = await make_user("other@example.com")
        appointment = await bookings.book_slot(test_user, slot.id)

        with pytest.raises(NotFoundError):
            await bookings.cancel_appointment(appointment.id, user=other)


class TestTransaction:

    async def test_failure_rolls_back_every_statement(self, db_session):
        start = utcnow() + timedelta(days=1)

        with pytest.raises(RuntimeError):
            async with transaction(db_session):
                db_session.add(TimeSlot(start_datetime=start, end_datetime=start + timedelta(hours=1),
                                        type="tel", status="available"))
                await db_session.flush()
                raise RuntimeError("boom")

        assert await _count(db_session, TimeSlot) == 0


class TestDeleteUser:

    async def test_cascade(self, bookings, db_session, test_admin, test_user, slot):
        await bookings.book_slot(test_user, slot.id)
        messages = MessageService(db_session, test_admin.id)
        await messages.send(test_admin.id, test_user.id, "hello")
        await messages.send(test_user.id, test_admin.id, "hi")
        db_session.add(Document(user_id=test_user.id, name="cv.pdf", url="https://files.example.com/cv.pdf"))
        await db_session.commit()
        await AccountService(db_session).set_visio_link(test_user.id, "https://meet.example.com/abc")

        await AccountService(db_session).delete_user(test_user.id)

        for model in (Appointment, Document, VisioLink, Profile):
            result = await db_session.execute(
                select(func.count()).select_from(model).where(model.user_id == test_user.id)
            )
            assert result.scalar_one() == 0, model.__name__
        assert await _count(db_session, InternalMessage) == 0
        assert await db_session.get(User, test_user.id) is None
        await db_session.refresh(slot)
        assert slot.status == SlotStatus.AVAILABLE.value
        assert await _count(db_session, User) == 1

    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await AccountService(db_session).delete_user(9999)

    async def test_deleting_canonical_admin_promotes_next(self, db_session, make_user, test_admin):
        second = await make_user("second-admin@example.com", role=UserRole.ADMIN)
        resolver = CanonicalAdminResolver(db_session)
        assert await resolver.resolve() == test_admin.id

        await AccountService(db_session, resolver=resolver).delete_user(test_admin.id)

        assert await resolver.resolve() == second.id


class TestVisioLinks:

    async def test_one_active_link(self, db_session, test_user):
        accounts = AccountService(db_session)

        first = await accounts.set_visio_link(test_user.id, "https://meet.example.com/a")
        second = await accounts.set_visio_link(test_user.id, "https://meet.example.com/b")

        active = await accounts.get_active_visio_link(test_user.id)
        assert active.id == second.id
        await db_session.refresh(first)
        assert first.is_active is False

        assert await accounts.deactivate_visio_link(test_user.id) == 1
        assert await accounts.deactivate_visio_link(test_user.id) == 0
        assert await accounts.get_active_visio_link(test_user.id) is None

    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await AccountService(db_session).set_visio_link(9999, "https://meet.example.com/a")
