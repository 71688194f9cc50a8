"""
API v1 routes.
"""

from fastapi import APIRouter

from coachdesk.api.v1 import admin, admin_messages, appointments, auth, me, messages

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(me.router, prefix="/me", tags=["Me"])
router.include_router(messages.router, prefix="/messages", tags=["Messages"])
# Before /admin so /admin/messages/... is not shadowed by admin routes
router.include_router(admin_messages.router, prefix="/admin/messages", tags=["Admin Messages"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
