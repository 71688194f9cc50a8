"""
Authentication endpoints.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request, Response, status

from coachdesk.api.cookies import clear_auth_cookies, set_access_cookie, set_auth_cookies
from coachdesk.api.deps import (
    AccessToken,
    AdminResolver,
    CurrentUser,
    DbSession,
    MailerDep,
    RefreshCookie,
    auth_exception,
    get_client_ip,
)
from coachdesk.kernel.errors import AuthenticationError
from coachdesk.kernel.identity.credentials import CredentialManager
from coachdesk.kernel.identity.identity_service import IdentityService
from coachdesk.kernel.identity.session_service import SessionService
from coachdesk.logging_config import get_logger
from coachdesk.schemas.auth import (
    AccessTokenResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from coachdesk.schemas.common import SuccessResponse

router = APIRouter()
logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent."
)


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    response: Response,
    db: DbSession,
    resolver: AdminResolver,
):
    """
    Register a new user account.

    Self-registration always creates the `user` role. Returns access and
    refresh tokens and sets them as cookies.
    """
    identity_service = IdentityService(db, resolver=resolver)

    try:
        await identity_service.register_user(
            email=data.email,
            password=data.password,
            last_name=data.last_name,
            first_name=data.first_name,
            telephone=data.telephone,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    result = await identity_service.authenticate(email=data.email, password=data.password)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to authenticate after registration",
        )

    user, token_pair = result
    set_auth_cookies(response, token_pair.access_token, token_pair.refresh_token)

    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    data: UserLogin,
    response: Response,
    db: DbSession,
):
    """Authenticate user, return tokens and set the token cookies."""
    result = await IdentityService(db).authenticate(email=data.email, password=data.password)

    if not result:
        logger.info("Rejected login", extra={"client_ip": get_client_ip(request)})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    user, token_pair = result
    set_auth_cookies(response, token_pair.access_token, token_pair.refresh_token)

    return TokenResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
        token_type=token_pair.token_type,
        expires_in=token_pair.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    response: Response,
    db: DbSession,
    refresh_cookie: RefreshCookie,
    data: Optional[RefreshTokenRequest] = None,
):
    """
    Mint a new access token.

    The refresh token is read from the `refreshToken` cookie, or from the
    body for clients without cookies. It is not rotated.
    """
    token = refresh_cookie or (data.refresh_token if data else None)

    try:
        user, access_token, expires_at = await SessionService(db).refresh(token)
    except AuthenticationError as e:
        # Keep a revocation made while rejecting the token
        await db.commit()
        raise auth_exception(e)

    set_access_cookie(response, access_token)
    expires_in = SessionService.seconds_until(expires_at)

    return AccessTokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    response: Response,
    db: DbSession,
    access_token: AccessToken,
    refresh_cookie: RefreshCookie,
    data: Optional[RefreshTokenRequest] = None,
):
    """
    Log out by revoking the presented access and refresh tokens.

    Always succeeds, even without tokens or with unreadable ones.
    """
    refresh = refresh_cookie or (data.refresh_token if data else None)
    await SessionService(db).logout(access_token, refresh)
    clear_auth_cookies(response)

    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(user: CurrentUser):
    """Get current user's profile."""
    return UserResponse.model_validate(user)


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    data: ChangePasswordRequest,
    response: Response,
    user: CurrentUser,
    db: DbSession,
    access_token: AccessToken,
    refresh_cookie: RefreshCookie,
):
    """
    Change user's password.

    Revokes the tokens of the calling session on success.
    """
    success = await SessionService(db).change_password(
        user,
        current_password=data.current_password,
        new_password=data.new_password,
        access_token=access_token,
        refresh_token=refresh_cookie or data.refresh_token,
    )

    if not success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    clear_auth_cookies(response)
    return SuccessResponse(message="Password changed successfully. Please log in again.")


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: DbSession,
    mailer: MailerDep,
):
    """Send a reset link. The answer is the same whether or not the email is known."""
    await CredentialManager(db).request_password_reset(data.email, mailer)
    return SuccessResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{token}", response_model=SuccessResponse)
async def reset_password(
    token: str,
    data: ResetPasswordRequest,
    db: DbSession,
):
    """Set a new password with a reset token."""
    if not await CredentialManager(db).consume_reset_token(token, data.password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    return SuccessResponse(message="Password has been reset. You can now log in.")
