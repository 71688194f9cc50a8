"""
Coaching accounts - bookings, visio links and account deletion.
"""

from coachdesk.kernel.accounts.account_service import AccountService
from coachdesk.kernel.accounts.booking_service import BookingService

__all__ = [
    "AccountService",
    "BookingService",
]
