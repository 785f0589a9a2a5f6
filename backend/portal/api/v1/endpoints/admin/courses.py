"""
Admin course management endpoints.
"""
from fastapi import APIRouter, Depends, status
from typing import List

from portal.api.deps import get_admin_service
from portal.modules.auth.dependencies import get_current_admin
from portal.schemas.course import Course, CourseCreate, CourseUpdate
from portal.schemas.user import Identity
from portal.services.admin_service import AdminService

router = APIRouter()


@router.get("", response_model=List[Course])
async def list_courses(
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    """All courses with their lecturer, ordered by course code"""
    return await service.list_courses()


@router.get("/{course_id}", response_model=Course)
async def get_course(
    course_id: str,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.get_course(course_id)


@router.post("", response_model=Course, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.create_course(data)


@router.patch("/{course_id}", response_model=Course)
async def update_course(
    course_id: str,
    data: CourseUpdate,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    return await service.update_course(course_id, data)


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    service: AdminService = Depends(get_admin_service),
    current_admin: Identity = Depends(get_current_admin)
):
    await service.delete_course(course_id)
    return {"success": True, "message": "Course deleted"}
