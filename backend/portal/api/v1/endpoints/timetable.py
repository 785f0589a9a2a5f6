"""
Student timetable endpoints.

- GET /timetable/agenda - one-off snapshot for the signed-in student
- GET /timetable/stream - Server-Sent Events, one frame per rebuilt snapshot
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from portal.api.deps import get_feed
from portal.core.directory import get_store
from portal.core.logging_config import logger
from portal.modules.auth.dependencies import get_current_identity
from portal.modules.timetable.live_sync import LiveSyncController
from portal.schemas.timetable import TimetableSnapshot
from portal.schemas.user import Identity
from portal.services.change_feed import ChangeFeed
from portal.services.directory_store import DirectoryStore

router = APIRouter(prefix="/timetable", tags=["Timetable"])


@router.get("/agenda", response_model=TimetableSnapshot)
async def get_agenda(
    identity: Identity = Depends(get_current_identity),
    store: DirectoryStore = Depends(get_store),
    feed: ChangeFeed = Depends(get_feed),
):
    """Weekly agenda and announcements for the caller's level"""
    controller = LiveSyncController(store, feed, identity)
    return await controller.refresh()


@router.get("/stream")
async def stream_agenda(
    request: Request,
    identity: Identity = Depends(get_current_identity),
    store: DirectoryStore = Depends(get_store),
    feed: ChangeFeed = Depends(get_feed),
):
    """
    Live agenda stream.

    The controller lives as long as the connection; disconnecting closes
    both change subscriptions.
    """
    async def event_stream():
        async with LiveSyncController(store, feed, identity) as controller:
            async for snapshot in controller.snapshots():
                if await request.is_disconnected():
                    break
                yield f"data: {snapshot.model_dump_json()}\n\n"
        logger.info(f"[Timetable] Stream closed for {identity.id}")

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
