"""
Admin user management endpoints.
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from portal.api.deps import get_admin_service
from portal.core.exceptions import ValidationError
from portal.modules.auth.dependencies import get_current_admin
from portal.schemas.user import Identity, User, UserCreate, UserRole, UserUpdate
from portal.services.admin_service import AdminService

router = APIRouter()


@router.get("", response_model=List[User])
async def list_users(
    role: Optional[UserRole] = Query(None),
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    """All users, newest first, optionally narrowed to one role"""
    return await service.list_users(role)


@router.get("/lecturers", response_model=List[User])
async def list_lecturers(
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.list_lecturers()


@router.post("", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.create_user(data)


@router.patch("/{user_id}", response_model=User)
async def update_user(
    user_id: str,
    data: UserUpdate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.update_user(user_id, data)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    if user_id == current_admin.id:
        raise ValidationError("Cannot delete your own account", field="user_id")
    await service.delete_user(user_id)
    return {"success": True, "message": "User deleted"}
