"""
Kernel Layer

Domain models and services shared by every route:
- Identity (accounts, credentials, sessions, revocation ledger)
- Internal messaging between users and the canonical admin
- Coaching accounts (bookings, visio links, account deletion)

Services raise the exceptions in kernel.errors and never build HTTP
responses themselves.
"""

from coachdesk.kernel.models import (
    User,
    UserRole,
    Profile,
    RevokedToken,
    TokenKind,
    InternalMessage,
)

__all__ = [
    "User",
    "UserRole",
    "Profile",
    "RevokedToken",
    "TokenKind",
    "InternalMessage",
]
