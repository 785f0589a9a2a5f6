from typing import Optional

from portal.core.config import settings
from portal.services.directory_store import DirectoryStore, RestDirectoryStore

# Lazy store initialization - create on first use to avoid import-time network setup
_store: Optional[DirectoryStore] = None


def get_directory_store() -> DirectoryStore:
    """Get or create the process-wide directory store client"""
    global _store
    if _store is None:
        _store = RestDirectoryStore(
            settings.rest_url,
            settings.DIRECTORY_API_KEY,
            schema=settings.DIRECTORY_SCHEMA,
            timeout=settings.DIRECTORY_TIMEOUT,
        )
    return _store


async def get_store() -> DirectoryStore:
    """FastAPI dependency for the directory store"""
    return get_directory_store()


async def close_directory_store() -> None:
    """Close the directory store client"""
    global _store
    if _store is not None:
        await _store.close()
        _store = None
