"""
Admin side of internal messaging.

All routes act as the canonical admin, whichever admin account is calling.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from coachdesk.api.deps import AdminUser, Messages
from coachdesk.kernel.errors import ConversationError, NotFoundError
from coachdesk.schemas.common import CountResponse, SuccessResponse
from coachdesk.schemas.messages import (
    ConversationResponse,
    ConversationUserResponse,
    DeletedResponse,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)

router = APIRouter()


@router.get("/users", response_model=List[ConversationUserResponse])
async def list_conversations(admin: AdminUser, messages: Messages):
    """Every non-admin user, unread conversations first."""
    summaries = await messages.list_users_with_conversations()
    return [
        ConversationUserResponse(
            user_id=s.user.id,
            email=s.user.email,
            last_name=s.user.last_name,
            first_name=s.user.first_name,
            role=s.user.role,
            last_message_at=s.last_message_at,
            unread_count=s.unread_count,
            last_admin_message_at=s.last_admin_message_at,
            last_admin_message_read=s.last_admin_message_read,
        )
        for s in summaries
    ]


@router.get("/unread-count", response_model=CountResponse)
async def get_unread_count(admin: AdminUser, messages: Messages):
    """Number of user messages the admin has not read."""
    return CountResponse(count=await messages.unread_count_for_admin())


@router.get("/{user_id}", response_model=ConversationResponse)
async def get_conversation(
    user_id: int,
    admin: AdminUser,
    messages: Messages,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    items, total = await messages.list_conversation(user_id, limit=limit, offset=offset)
    return ConversationResponse(
        items=[MessageResponse.model_validate(m) for m in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.post("/{user_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_to_user(
    user_id: int,
    data: MessageCreate,
    admin: AdminUser,
    messages: Messages,
):
    """Send a message to a user as the canonical admin."""
    try:
        message = await messages.send(messages.admin_id, user_id, data.content)
    except NotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ConversationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return MessageResponse.model_validate(message)


@router.put("/{user_id}/mark-read", response_model=MarkReadResponse)
async def mark_read(user_id: int, admin: AdminUser, messages: Messages):
    """Mark the user's messages to the admin as read."""
    return MarkReadResponse(updated=await messages.mark_read_by_admin(user_id))


@router.delete("/items/{message_id}", response_model=SuccessResponse)
async def delete_message(message_id: int, admin: AdminUser, messages: Messages):
    """Delete a single message."""
    if not await messages.delete_message(message_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found",
        )
    return SuccessResponse(message="Message deleted")


@router.delete("/{user_id}", response_model=DeletedResponse)
async def delete_conversation(user_id: int, admin: AdminUser, messages: Messages):
    """Delete the whole conversation with a user."""
    return DeletedResponse(deleted=await messages.delete_conversation(user_id))
