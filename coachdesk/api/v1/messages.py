"""
User side of internal messaging: the caller's conversation with the admin.
"""

from fastapi import APIRouter, HTTPException, Query, status

from coachdesk.api.deps import CurrentUser, Messages
from coachdesk.kernel.errors import ConversationError
from coachdesk.schemas.common import CountResponse
from coachdesk.schemas.messages import (
    ConversationResponse,
    MarkReadResponse,
    MessageCreate,
    MessageResponse,
)

router = APIRouter()


@router.get("", response_model=ConversationResponse)
async def get_my_conversation(
    user: CurrentUser,
    messages: Messages,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """Get the caller's conversation with the admin, newest first."""
    items, total = await messages.list_conversation(user.id, limit=limit, offset=offset)
    return ConversationResponse(
        items=[MessageResponse.model_validate(m) for m in items],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(items) < total,
    )


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message_to_admin(
    data: MessageCreate,
    user: CurrentUser,
    messages: Messages,
):
    """Send a message to the admin."""
    try:
        message = await messages.send(user.id, messages.admin_id, data.content)
    except ConversationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return MessageResponse.model_validate(message)


@router.get("/unread-count", response_model=CountResponse)
async def get_unread_count(user: CurrentUser, messages: Messages):
    """Number of admin messages the caller has not read."""
    return CountResponse(count=await messages.unread_count_for_user(user.id))


@router.put("/mark-read", response_model=MarkReadResponse)
async def mark_read(user: CurrentUser, messages: Messages):
    """Mark every admin message to the caller as read."""
    return MarkReadResponse(updated=await messages.mark_read_by_user(user.id))
