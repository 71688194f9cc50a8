"""
Admin schemas.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl

from coachdesk.schemas.auth import UserResponse


class VisitorCreate(BaseModel):
    email: EmailStr
    last_name: str = Field(..., min_length=1, max_length=255)
    first_name: str = Field("", max_length=255)
    telephone: Optional[str] = Field(None, max_length=50)


class VisitorCreatedResponse(BaseModel):
    """The generated password is returned once and never again."""

    user: UserResponse
    password: str


class VisioLinkCreate(BaseModel):
    user_id: int
    visio_url: HttpUrl


class VisioLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    visio_url: str
    is_active: bool
