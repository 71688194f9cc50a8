"""
Canonical admin resolution.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.kernel.errors import AdminNotConfiguredError
from coachdesk.kernel.models.user import User, UserRole
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)


class CanonicalAdminResolver:
    """
    Resolves the one admin identity every conversation is held with.

    The canonical admin is the lowest id with the admin role. The value is
    cached on the resolver, which lives for one request; anything that
    changes the admin roster calls invalidate().
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._admin_id: Optional[int] = None

    async def resolve(self) -> int:
        """
        Returns:
            The canonical admin's user id

        Raises:
            AdminNotConfiguredError: if no admin exists
        """
        if self._admin_id is not None:
            return self._admin_id

        result = await self.session.execute(
            select(func.min(User.id)).where(User.role == UserRole.ADMIN.value)
        )
        admin_id = result.scalar_one_or_none()
        if admin_id is None:
            logger.error("No admin identity configured")
            raise AdminNotConfiguredError("No user with the admin role exists")

        self._admin_id = admin_id
        return admin_id

    def invalidate(self) -> None:
        self._admin_id = None
