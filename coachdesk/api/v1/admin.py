"""
Admin endpoints: own password, visitor accounts, account deletion, visio
links and time slots.
"""

from fastapi import APIRouter, HTTPException, Response, status

from coachdesk.api.cookies import clear_auth_cookies
from coachdesk.api.deps import AccessToken, AdminResolver, AdminUser, DbSession, RefreshCookie
from coachdesk.kernel.accounts import AccountService, BookingService
from coachdesk.kernel.errors import NotFoundError
from coachdesk.kernel.identity.identity_service import IdentityService
from coachdesk.kernel.identity.session_service import SessionService
from coachdesk.schemas.admin import (
    VisioLinkCreate,
    VisioLinkResponse,
    VisitorCreate,
    VisitorCreatedResponse,
)
from coachdesk.schemas.appointments import TimeSlotCreate, TimeSlotResponse
from coachdesk.schemas.auth import ChangePasswordRequest, UserResponse
from coachdesk.schemas.common import SuccessResponse

router = APIRouter()


@router.put("/change-password", response_model=SuccessResponse)
async def change_admin_password(
    data: ChangePasswordRequest,
    response: Response,
    admin: AdminUser,
    db: DbSession,
    access_token: AccessToken,
    refresh_cookie: RefreshCookie,
):
    """Change the calling admin's password and end this session."""
    success = await SessionService(db).change_password(
        admin,
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


@router.post("/visitors", response_model=VisitorCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_visitor(
    data: VisitorCreate,
    admin: AdminUser,
    db: DbSession,
    resolver: AdminResolver,
):
    """Create a visitor account with a generated password."""
    try:
        user, password = await IdentityService(db, resolver=resolver).create_visitor(
            email=data.email,
            last_name=data.last_name,
            first_name=data.first_name,
            telephone=data.telephone,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return VisitorCreatedResponse(user=UserResponse.model_validate(user), password=password)


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: int,
    admin: AdminUser,
    db: DbSession,
    resolver: AdminResolver,
):
    """Delete a user and all of their data."""
    if user_id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )

    try:
        await AccountService(db, resolver=resolver).delete_user(user_id)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )

    return SuccessResponse(message="User deleted")


@router.post("/visio", response_model=VisioLinkResponse)
async def set_visio_link(data: VisioLinkCreate, admin: AdminUser, db: DbSession):
    """Activate a visio link for a user, replacing the current one."""
    try:
        link = await AccountService(db).set_visio_link(data.user_id, str(data.visio_url))
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    return VisioLinkResponse.model_validate(link)


@router.delete("/visio/{user_id}", response_model=SuccessResponse)
async def deactivate_visio_link(user_id: int, admin: AdminUser, db: DbSession):
    """Deactivate the user's visio link. Succeeds when there is none."""
    deactivated = await AccountService(db).deactivate_visio_link(user_id)
    if deactivated:
        return SuccessResponse(message="Visio link deactivated")
    return SuccessResponse(message="No active visio link for this user")


@router.post("/time-slots", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
async def create_time_slot(data: TimeSlotCreate, admin: AdminUser, db: DbSession):
    """Publish a bookable time slot."""
    try:
        slot = await BookingService(db).create_time_slot(
            data.start_datetime,
            data.end_datetime,
            data.type,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return TimeSlotResponse.model_validate(slot)
