from fastapi import Depends

from portal.core.directory import get_store
from portal.modules.auth.dependencies import get_session_provider
from portal.modules.auth.session import SessionProvider
from portal.services.admin_service import AdminService
from portal.services.change_feed import ChangeFeed, get_change_feed
from portal.services.directory_store import DirectoryStore


async def get_feed() -> ChangeFeed:
    """FastAPI dependency for the change feed"""
    return get_change_feed()


async def get_admin_service(
    store: DirectoryStore = Depends(get_store),
    sessions: SessionProvider = Depends(get_session_provider),
) -> AdminService:
    return AdminService(store, sessions)
