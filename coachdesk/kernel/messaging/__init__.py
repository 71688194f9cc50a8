"""
Internal messaging - user <-> canonical admin conversations.
"""

from coachdesk.kernel.messaging.admin_resolver import CanonicalAdminResolver
from coachdesk.kernel.messaging.message_service import (
    ConversationSummary,
    MessageService,
    PendingReminder,
)

__all__ = [
    "CanonicalAdminResolver",
    "ConversationSummary",
    "MessageService",
    "PendingReminder",
]
