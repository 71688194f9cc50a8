"""
Pydantic schemas for API request/response validation.
"""

from coachdesk.schemas.auth import (
    UserCreate,
    UserLogin,
    UserResponse,
    TokenResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from coachdesk.schemas.messages import (
    MessageCreate,
    MessageResponse,
    ConversationResponse,
    ConversationUserResponse,
    MarkReadResponse,
    DeletedResponse,
)
from coachdesk.schemas.appointments import (
    TimeSlotCreate,
    TimeSlotResponse,
    AppointmentCreate,
    AppointmentResponse,
)
from coachdesk.schemas.admin import (
    VisitorCreate,
    VisitorCreatedResponse,
    VisioLinkCreate,
    VisioLinkResponse,
)
from coachdesk.schemas.common import (
    CountResponse,
    ErrorDetail,
    HealthResponse,
    SuccessResponse,
)

__all__ = [
    # Auth
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "RefreshTokenRequest",
    "AccessTokenResponse",
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "ResetPasswordRequest",
    # Messages
    "MessageCreate",
    "MessageResponse",
    "ConversationResponse",
    "ConversationUserResponse",
    "MarkReadResponse",
    "DeletedResponse",
    # Appointments
    "TimeSlotCreate",
    "TimeSlotResponse",
    "AppointmentCreate",
    "AppointmentResponse",
    # Admin
    "VisitorCreate",
    "VisitorCreatedResponse",
    "VisioLinkCreate",
    "VisioLinkResponse",
    # Common
    "CountResponse",
    "ErrorDetail",
    "HealthResponse",
    "SuccessResponse",
]
