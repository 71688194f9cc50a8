"""
Internal messaging schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageCreate(BaseModel):
    """New message; blank content is rejected here, not by the service."""

    content: str = Field(..., max_length=5000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be empty")
        return v


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_id: int
    content: str
    is_admin: bool
    read: bool
    created_at: datetime


class ConversationResponse(BaseModel):
    """One page of a conversation, newest first."""

    items: List[MessageResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class MarkReadResponse(BaseModel):
    updated: int


class DeletedResponse(BaseModel):
    deleted: int


class ConversationUserResponse(BaseModel):
    """Admin inbox row."""

    user_id: int
    email: str
    last_name: str
    first_name: str
    role: str
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    last_admin_message_at: Optional[datetime] = None
    last_admin_message_read: Optional[bool] = None
