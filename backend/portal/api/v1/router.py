from fastapi import APIRouter
from portal.api.v1.endpoints import auth, timetable, announcements, changes, health
from portal.api.v1.endpoints.admin import admin_router

api_router = APIRouter()

# Deep health checks (/health/live, /health/ready)
api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "timetable-portal"}


api_router.include_router(auth.router)
api_router.include_router(timetable.router)
api_router.include_router(announcements.router)
api_router.include_router(changes.router)
api_router.include_router(admin_router)
