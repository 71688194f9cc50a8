"""
FastAPI dependencies for authentication, authorization, and database sessions.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from coachdesk.api.cookies import ACCESS_COOKIE, REFRESH_COOKIE
from coachdesk.database import get_db
from coachdesk.kernel.errors import AuthenticationError, PermissionDeniedError
from coachdesk.kernel.identity.identity_service import IdentityService
from coachdesk.kernel.identity.session_service import IdentityClaim, SessionService
from coachdesk.kernel.messaging import CanonicalAdminResolver, MessageService
from coachdesk.kernel.models.user import User
from coachdesk.mailer import Mailer, get_mailer
from coachdesk.schemas.common import ErrorDetail


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]


def auth_exception(exc: AuthenticationError) -> HTTPException:
    """401 carrying the machine-readable reason code."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=ErrorDetail(code=exc.reason.value, message=exc.message).model_dump(),
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_access_token(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[str]:
    """Presented access token: the cookie wins over the Authorization header."""
    cookie = request.cookies.get(ACCESS_COOKIE)
    if cookie:
        return cookie
    if credentials:
        return credentials.credentials
    return None


def get_refresh_cookie(request: Request) -> Optional[str]:
    return request.cookies.get(REFRESH_COOKIE)


AccessToken = Annotated[Optional[str], Depends(get_access_token)]
RefreshCookie = Annotated[Optional[str], Depends(get_refresh_cookie)]


async def get_identity(request: Request, token: AccessToken, db: DbSession) -> IdentityClaim:
    """Verify the presented access token and attach the claim to the request."""
    try:
        claim = await SessionService(db).verify(token)
    except AuthenticationError as e:
        raise auth_exception(e)

    request.state.identity = claim
    return claim


Identity = Annotated[IdentityClaim, Depends(get_identity)]


async def get_current_user(claim: Identity, db: DbSession) -> User:
    """Load the authenticated user or raise 404 if the account is gone."""
    user = await IdentityService(db).get_user_by_id(claim.user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def require_admin(user: CurrentUser) -> User:
    """Require the current user to be an admin."""
    if not user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return user


AdminUser = Annotated[User, Depends(require_admin)]


def get_admin_resolver(db: DbSession) -> CanonicalAdminResolver:
    """One resolver per request; FastAPI caches it across dependencies."""
    return CanonicalAdminResolver(db)


AdminResolver = Annotated[CanonicalAdminResolver, Depends(get_admin_resolver)]


async def get_message_service(db: DbSession, resolver: AdminResolver) -> MessageService:
    """Messaging scoped to the canonical admin (AdminNotConfiguredError -> 500)."""
    return MessageService(db, await resolver.resolve())


Messages = Annotated[MessageService, Depends(get_message_service)]


def get_client_ip(request: Request) -> Optional[str]:
    """Extract client IP from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
