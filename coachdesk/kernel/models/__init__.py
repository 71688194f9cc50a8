"""
Kernel Data Models

Core SQLAlchemy models: identities, the revocation ledger, internal
messages and the coaching records that hang off a user.
"""

from coachdesk.kernel.models.base import Base, TimestampMixin, utcnow
from coachdesk.kernel.models.user import User, UserRole, Profile
from coachdesk.kernel.models.revoked_token import RevokedToken, TokenKind
from coachdesk.kernel.models.internal_message import InternalMessage
from coachdesk.kernel.models.coaching import (
    TimeSlot,
    SlotStatus,
    Appointment,
    AppointmentType,
    AppointmentStatus,
    VisioLink,
    Document,
    FormSubmission,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    # User
    "User",
    "UserRole",
    "Profile",
    # Tokens
    "RevokedToken",
    "TokenKind",
    # Messaging
    "InternalMessage",
    # Coaching
    "TimeSlot",
    "SlotStatus",
    "Appointment",
    "AppointmentType",
    "AppointmentStatus",
    "VisioLink",
    "Document",
    "FormSubmission",
]
