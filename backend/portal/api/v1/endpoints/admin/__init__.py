"""
Admin API endpoints for the timetable portal.
All endpoints require the admin role.
"""
from fastapi import APIRouter

from portal.api.v1.endpoints.admin import courses, timetable, announcements, users

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

# Include all admin sub-routers
admin_router.include_router(courses.router, prefix="/courses", tags=["Admin Courses"])
admin_router.include_router(timetable.router, prefix="/timetable", tags=["Admin Timetable"])
admin_router.include_router(announcements.router, prefix="/announcements", tags=["Admin Announcements"])
admin_router.include_router(users.router, prefix="/users", tags=["Admin Users"])
