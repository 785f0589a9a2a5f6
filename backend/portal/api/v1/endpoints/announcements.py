from fastapi import APIRouter, Depends
from typing import List

from portal.core.directory import get_store
from portal.modules.auth.dependencies import get_current_identity
from portal.schemas.announcement import Announcement
from portal.schemas.user import Identity
from portal.services.directory_store import DirectoryStore
from portal.services.timetable_queries import fetch_announcements_for_level

router = APIRouter(prefix="/announcements", tags=["Announcements"])


@router.get("", response_model=List[Announcement])
async def list_announcements(
    identity: Identity = Depends(get_current_identity),
    store: DirectoryStore = Depends(get_store),
):
    """Announcements for the caller's level plus broadcasts, newest first"""
    return await fetch_announcements_for_level(store, identity.level)
