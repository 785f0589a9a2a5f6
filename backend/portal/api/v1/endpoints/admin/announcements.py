from fastapi import APIRouter, Depends, status
from typing import List

from portal.api.deps import get_admin_service
from portal.modules.auth.dependencies import get_current_admin
from portal.schemas.announcement import Announcement, AnnouncementCreate
from portal.schemas.user import Identity
from portal.services.admin_service import AdminService

router = APIRouter()


@router.get("", response_model=List[Announcement])
async def list_announcements(
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.list_announcements()


@router.post("", response_model=Announcement, status_code=status.HTTP_201_CREATED)
async def post_announcement(
    data: AnnouncementCreate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    """Post to one level, or to everyone when level is left empty"""
    return await service.post_announcement(current_admin, data)


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    await service.delete_announcement(announcement_id)
    return {"success": True, "message": "Announcement deleted"}
