"""
Appointment booking endpoints.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from coachdesk.api.deps import CurrentUser, DbSession, MailerDep
from coachdesk.kernel.accounts import BookingService
from coachdesk.kernel.errors import NotFoundError, SlotUnavailableError
from coachdesk.schemas.appointments import (
    AppointmentCreate,
    AppointmentResponse,
    TimeSlotResponse,
)

router = APIRouter()


@router.get("/slots", response_model=List[TimeSlotResponse])
async def list_available_slots(user: CurrentUser, db: DbSession):
    """Upcoming slots that can still be booked."""
    slots = await BookingService(db).list_available_slots()
    return [TimeSlotResponse.model_validate(s) for s in slots]


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    data: AppointmentCreate,
    user: CurrentUser,
    db: DbSession,
    mailer: MailerDep,
):
    """Book a slot. A confirmation email follows; its failure does not undo the booking."""
    try:
        appointment = await BookingService(db, mailer).book_slot(user, data.time_slot_id, data.type)
    except SlotUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return AppointmentResponse.model_validate(appointment)


@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    user: CurrentUser,
    db: DbSession,
    mailer: MailerDep,
):
    """Cancel one of the caller's appointments and free its slot."""
    try:
        appointment = await BookingService(db, mailer).cancel_appointment(appointment_id, user=user)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return AppointmentResponse.model_validate(appointment)
