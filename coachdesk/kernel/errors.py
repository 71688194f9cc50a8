"""
Domain exceptions raised by kernel services.

Routes translate these into HTTP responses; services never build
HTTPException themselves.
"""

from enum import Enum


class AuthFailure(str, Enum):
    """Machine-readable reasons for rejecting a presented token."""
    TOKEN_MISSING = "TOKEN_MISSING"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"


AUTH_FAILURE_MESSAGES = {
    AuthFailure.TOKEN_MISSING: "Not authenticated: token missing",
    AuthFailure.TOKEN_REVOKED: "Session has been revoked, please log in again",
    AuthFailure.TOKEN_EXPIRED: "Token expired",
    AuthFailure.TOKEN_INVALID: "Invalid token",
}


class AuthenticationError(Exception):
    """A presented token was missing, revoked, expired or invalid."""

    def __init__(self, reason: AuthFailure):
        self.reason = reason
        super().__init__(AUTH_FAILURE_MESSAGES[reason])

    @property
    def message(self) -> str:
        return AUTH_FAILURE_MESSAGES[self.reason]


class PermissionDeniedError(Exception):
    """The caller is authenticated but lacks the required role."""


class NotFoundError(LookupError):
    """A referenced identity, message or record does not exist."""


class ConversationError(ValueError):
    """A message pair does not involve the canonical admin exactly once."""


class SlotUnavailableError(ValueError):
    """A time slot does not exist or is already booked."""


class AdminNotConfiguredError(RuntimeError):
    """
    No identity with the admin role exists.

    This is deployment state, not user input: surfaced as a server error.
    """
