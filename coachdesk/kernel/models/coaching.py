"""
Coaching models: bookable time slots, appointments, visio links and the
per-user documents and form submissions that account deletion cascades over.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from coachdesk.kernel.models.base import Base, TimestampMixin


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    BOOKED = "booked"


class AppointmentType(str, Enum):
    """Appointment kinds; each one completes a profile progress step."""
    PHONE = "tel"
    STRATEGY = "strat"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class TimeSlot(Base, TimestampMixin):
    """An administrator-published slot that one user can book."""

    __tablename__ = "time_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_datetime: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    end_datetime: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=SlotStatus.AVAILABLE.value,
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)


class Appointment(Base, TimestampMixin):
    """A booked time slot."""

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    time_slot_id: Mapped[int] = mapped_column(
        ForeignKey("time_slots.id"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AppointmentStatus.SCHEDULED.value,
        nullable=False,
    )
    reminder_sent_24h: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reminder_sent_2h: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class VisioLink(Base, TimestampMixin):
    """Video-call link for a user. At most one is active at a time."""

    __tablename__ = "visio_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    visio_url: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_visio_links_user_active", "user_id", "is_active"),
    )


class Document(Base, TimestampMixin):
    """Uploaded document reference."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)


class FormSubmission(Base, TimestampMixin):
    """Situation questionnaire answers."""

    __tablename__ = "form_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), default="situation", nullable=False)
    data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
