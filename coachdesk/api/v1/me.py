"""
Caller-scoped account resources.
"""

from typing import Optional

from fastapi import APIRouter

from coachdesk.api.deps import CurrentUser, DbSession
from coachdesk.kernel.accounts import AccountService
from coachdesk.schemas.admin import VisioLinkResponse

router = APIRouter()


@router.get("/visio", response_model=Optional[VisioLinkResponse])
async def get_my_visio_link(user: CurrentUser, db: DbSession):
    """The caller's active visio link, or null when none is set."""
    link = await AccountService(db).get_active_visio_link(user.id)
    if link is None:
        return None
    return VisioLinkResponse.model_validate(link)
