"""
Identity service for user management operations.
"""

import secrets
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.kernel.identity.jwt import JWTManager, TokenPair, get_jwt_manager
from coachdesk.kernel.identity.password import PasswordHasher, get_password_hasher
from coachdesk.kernel.messaging.admin_resolver import CanonicalAdminResolver
from coachdesk.kernel.models.user import Profile, User, UserRole
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)

VISITOR_PASSWORD_BYTES = 9  # 12 url-safe characters


class IdentityService:
    """
    Service for user identity operations.

    Handles registration, visitor and admin creation, and authentication.
    Anything that changes the admin roster invalidates the resolver so the
    canonical admin is looked up again.
    """

    def __init__(
        self,
        session: AsyncSession,
        resolver: Optional[CanonicalAdminResolver] = None,
        jwt_manager: Optional[JWTManager] = None,
        hasher: Optional[PasswordHasher] = None,
    ):
        self.session = session
        self.resolver = resolver
        self.jwt_manager = jwt_manager or get_jwt_manager()
        self.hasher = hasher or get_password_hasher()

    async def register_user(
        self,
        email: str,
        password: str,
        last_name: str,
        first_name: str = "",
        role: UserRole = UserRole.USER,
        telephone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> User:
        """
        Register a new user together with an empty profile.

        Args:
            email: User's email address
            password: Plain text password
            last_name: Family name
            first_name: Given name
            role: User role (default: user)
            telephone: Optional phone number stored on the profile
            address: Optional postal address stored on the profile

        Returns:
            The created User object

        Raises:
            ValueError: If email already exists
        """
        existing = await self.get_user_by_email(email)
        if existing:
            raise ValueError("Email already registered")

        user = User(
            email=email.lower().strip(),
            password_hash=self.hasher.hash(password),
            last_name=last_name.strip(),
            first_name=first_name.strip(),
            role=role.value,
        )
        self.session.add(user)
        try:
            await self.session.flush()  # Get the ID
        except IntegrityError:
            # A concurrent registration claimed the email after our check
            await self.session.rollback()
            raise ValueError("Email already registered")

        self.session.add(Profile(user_id=user.id, telephone=telephone, address=address))
        await self.session.flush()

        if role == UserRole.ADMIN and self.resolver is not None:
            self.resolver.invalidate()

        logger.info("User registered", extra={"user_id": user.id, "role": user.role})
        return user

    async def create_visitor(
        self,
        email: str,
        last_name: str,
        first_name: str = "",
        telephone: Optional[str] = None,
    ) -> tuple[User, str]:
        """
        Create a visitor account on behalf of the admin.

        Returns:
            (user, generated_password); the password is shown once to the
            admin and never stored in clear
        """
        password = secrets.token_urlsafe(VISITOR_PASSWORD_BYTES)
        user = await self.register_user(
            email=email,
            password=password,
            last_name=last_name,
            first_name=first_name,
            role=UserRole.VISITOR,
            telephone=telephone,
        )
        return user, password

    async def create_admin(
        self,
        email: str,
        password: str,
        last_name: str,
        first_name: str = "",
    ) -> User:
        return await self.register_user(
            email=email,
            password=password,
            last_name=last_name,
            first_name=first_name,
            role=UserRole.ADMIN,
        )

    async def authenticate(self, email: str, password: str) -> Optional[tuple[User, TokenPair]]:
        """
        Authenticate a user and return tokens.

        Unknown email and wrong password are indistinguishable to the caller.

        Returns:
            Tuple of (User, TokenPair) if successful, None otherwise
        """
        user = await self.get_user_by_email(email)
        if not user:
            return None

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed", extra={"user_id": user.id})
            return None

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash(password)
            await self.session.flush()

        token_pair = self.jwt_manager.create_token_pair(
            user_id=user.id,
            email=user.email,
            role=user.role,
        )
        logger.info("User logged in", extra={"user_id": user.id})
        return user, token_pair

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get a user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
