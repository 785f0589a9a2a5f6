"""
Admin timetable management endpoints.

Times are validated as 24-hour HH:MM before anything reaches the store.
"""
from fastapi import APIRouter, Depends, status
from typing import List

from portal.api.deps import get_admin_service
from portal.modules.auth.dependencies import get_current_admin
from portal.schemas.timetable import TimetableEntry, TimetableEntryCreate, TimetableEntryUpdate
from portal.schemas.user import Identity
from portal.services.admin_service import AdminService

router = APIRouter()


@router.get("", response_model=List[TimetableEntry])
async def list_entries(
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.list_timetable()


@router.post("", response_model=TimetableEntry, status_code=status.HTTP_201_CREATED)
async def create_entry(
    data: TimetableEntryCreate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    """Schedule a class; level defaults to the course's level"""
    return await service.create_entry(data)


@router.patch("/{entry_id}", response_model=TimetableEntry)
async def update_entry(
    entry_id: str,
    data: TimetableEntryUpdate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.update_entry(entry_id, data)


@router.delete("/{entry_id}")
async def delete_entry(
    entry_id: str,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    await service.delete_entry(entry_id)
    return {"success": True, "message": "Timetable entry deleted"}
