"""
Time slot and appointment schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from coachdesk.kernel.models.coaching import AppointmentType


class TimeSlotCreate(BaseModel):
    start_datetime: datetime
    end_datetime: datetime
    type: AppointmentType

    @model_validator(mode="after")
    def check_order(self) -> "TimeSlotCreate":
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self


class TimeSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start_datetime: datetime
    end_datetime: datetime
    status: str
    type: str


class AppointmentCreate(BaseModel):
    time_slot_id: int
    type: Optional[AppointmentType] = None


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    time_slot_id: int
    type: str
    status: str
    created_at: datetime
