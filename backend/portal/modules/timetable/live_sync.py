"""
Live Sync Controller - keeps a student's timetable snapshot current

Lifecycle:
┌──────────────┐  activate   ┌───────────────────────────────┐
│   inactive   │ ──────────► │ subscribed to timetable +     │
│              │ ◄────────── │ announcements, snapshot built │
└──────────────┘  deactivate └───────────────┬───────────────┘
                                             │ any change event
                                             ▼
                               full re-fetch -> rebuild agenda

Any event on either table discards the snapshot and rebuilds it from a fresh
fetch; there is no incremental patching. Every fetch takes a sequence number
and only the latest issued one may replace the snapshot, so overlapping
fetches cannot land out of order.
"""

from typing import Any, AsyncIterator, Callable, List, Optional, Set
from datetime import datetime
import asyncio

from portal.core.config import settings
from portal.core.exceptions import PortalError
from portal.core.logging_config import logger
from portal.modules.timetable.view_model import build_agenda, EMPTY_AGENDA_MESSAGE
from portal.schemas.timetable import TimetableSnapshot
from portal.schemas.user import Identity
from portal.services.change_feed import ChangeFeed, ChangeEvent, Subscription, ALL_EVENTS
from portal.services.directory_store import DirectoryStore
from portal.services.timetable_queries import (
    fetch_timetable_for_level,
    fetch_announcements_for_level,
)

SnapshotHandler = Callable[[TimetableSnapshot], Any]

_STOP = object()


class LiveSyncController:
    """
    Owns one student view's snapshot.

    Usage:
        async with LiveSyncController(store, feed, identity) as controller:
            async for snapshot in controller.snapshots():
                render(snapshot)
    """

    def __init__(
        self,
        store: DirectoryStore,
        feed: ChangeFeed,
        identity: Identity,
        on_snapshot: Optional[SnapshotHandler] = None,
    ):
        self._store = store
        self._feed = feed
        self._identity = identity
        self._on_snapshot = on_snapshot

        self.watched_tables = (settings.TIMETABLE_TABLE, settings.ANNOUNCEMENTS_TABLE)

        self._subscriptions: List[Subscription] = []
        self._listeners: List[asyncio.Task] = []
        self._inflight: Set[asyncio.Task] = set()
        self._watchers: List[asyncio.Queue] = []

        self._sequence = 0  # Last issued fetch
        self._fetch_count = 0
        self._snapshot = TimetableSnapshot(level=identity.level, empty_message=EMPTY_AGENDA_MESSAGE)
        self._loading = False
        self._active = False

    # ========== State ==========

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def snapshot(self) -> TimetableSnapshot:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def active(self) -> bool:
        return self._active

    @property
    def fetch_count(self) -> int:
        return self._fetch_count

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions)

    # ========== Lifecycle ==========

    async def activate(self) -> TimetableSnapshot:
        """Open both change subscriptions, then fetch the initial snapshot"""
        if self._active:
            return self._snapshot

        self._active = True
        logger.log_sync_event("activate", level=self._identity.level, user_id=self._identity.id)
        self._open_subscriptions()
        return await self.refresh()

    async def deactivate(self) -> None:
        """Cancel in-flight work and close both subscriptions"""
        if not self._active:
            return

        self._active = False
        # Invalidate every fetch issued so far
        self._sequence += 1

        for task in list(self._inflight):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        self._inflight.clear()

        await self._close_subscriptions()
        self._loading = False

        for queue in self._watchers:
            queue.put_nowait(_STOP)

        logger.log_sync_event("deactivate", level=self._identity.level, user_id=self._identity.id)

    async def update_identity(self, identity: Identity) -> None:
        """
        Swap the identity; a different level re-derives the query filter,
        re-subscribes and re-fetches.
        """
        level_changed = identity.level != self._identity.level
        self._identity = identity

        if not level_changed or not self._active:
            return

        logger.log_sync_event("level changed", level=identity.level, user_id=identity.id)
        self._sequence += 1
        await self._close_subscriptions()
        self._open_subscriptions()
        await self.refresh()

    async def __aenter__(self) -> "LiveSyncController":
        try:
            await self.activate()
        except BaseException:
            await self.deactivate()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.deactivate()

    # ========== Subscriptions ==========

    def _open_subscriptions(self) -> None:
        for table in self.watched_tables:
            try:
                subscription = self._feed.subscribe(table, ALL_EVENTS)
            except PortalError as e:
                # Fetch-once mode: the snapshot still loads, it just won't update
                logger.log_error_with_context(e, f"live sync subscribe {table}")
                continue
            self._subscriptions.append(subscription)
            self._listeners.append(asyncio.create_task(self._listen(subscription)))

    async def _close_subscriptions(self) -> None:
        for task in self._listeners:
            task.cancel()
        if self._listeners:
            await asyncio.gather(*self._listeners, return_exceptions=True)
        self._listeners.clear()

        for subscription in self._subscriptions:
            self._feed.unsubscribe(subscription)
        self._subscriptions.clear()

    async def _listen(self, subscription: Subscription) -> None:
        async for event in subscription:
            self._on_change(event)

    def _on_change(self, event: ChangeEvent) -> None:
        if not self._active:
            return
        logger.debug(f"[LiveSync] {event.kind.value} on {event.table}, resyncing")
        task = asyncio.create_task(self.refresh(trigger=event.table))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    # ========== Fetch & Rebuild ==========

    async def refresh(self, trigger: Optional[str] = None) -> TimetableSnapshot:
        """
        Re-fetch everything for the current level and rebuild the snapshot.
        `trigger` names the watched table whose change caused the refresh.

        Failures never escape: any error other than cancellation produces an
        empty snapshot with `error` set, so `loading` always clears. Returns
        the snapshot in effect afterwards.
        """
        self._sequence += 1
        sequence = self._sequence
        self._fetch_count += 1
        self._loading = True
        level = self._identity.level

        try:
            snapshot = await self._fetch_snapshot(sequence, level)
        except Exception as e:
            if sequence != self._sequence:
                return self._snapshot
            logger.log_error_with_context(
                e, "live sync fetch", sync_sequence=sequence, sync_level=level, sync_table=trigger
            )
            message = e.message if isinstance(e, PortalError) else f"Failed to load timetable: {e}"
            snapshot = TimetableSnapshot(
                sequence=sequence,
                level=level,
                fetched_at=datetime.utcnow(),
                error=message,
                empty_message=EMPTY_AGENDA_MESSAGE,
            )

        if sequence != self._sequence:
            logger.debug(f"[LiveSync] Discarding stale fetch {sequence} (latest {self._sequence})")
            return self._snapshot

        self._loading = False
        await self._publish(snapshot, trigger)
        return snapshot

    async def _fetch_snapshot(self, sequence: int, level: Optional[str]) -> TimetableSnapshot:
        if level:
            entries = await fetch_timetable_for_level(self._store, level)
        else:
            logger.warning(f"[LiveSync] Identity {self._identity.id} has no level, nothing to fetch")
            entries = []

        try:
            announcements = await fetch_announcements_for_level(self._store, level)
        except PortalError as e:
            logger.warning(f"[LiveSync] Announcements unavailable: {e.message}")
            announcements = []

        agenda = build_agenda(entries)
        return TimetableSnapshot(
            sequence=sequence,
            level=level,
            entries=entries,
            agenda=agenda,
            announcements=announcements,
            fetched_at=datetime.utcnow(),
            empty_message=EMPTY_AGENDA_MESSAGE if agenda.is_empty else None,
        )

    async def _publish(self, snapshot: TimetableSnapshot, trigger: Optional[str] = None) -> None:
        self._snapshot = snapshot
        logger.log_sync_event(
            "snapshot rebuilt",
            level=snapshot.level,
            sequence=snapshot.sequence,
            table=trigger,
            entry_count=len(snapshot.entries),
            failed=snapshot.error is not None,
        )

        for queue in self._watchers:
            queue.put_nowait(snapshot)

        if self._on_snapshot is not None:
            try:
                result = self._on_snapshot(snapshot)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"[LiveSync] Snapshot handler error: {e}")

    async def snapshots(self) -> AsyncIterator[TimetableSnapshot]:
        """
        Yield the current snapshot, then every accepted rebuild until the
        controller is deactivated.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._watchers.append(queue)
        try:
            yield self._snapshot
            while self._active:
                item = await queue.get()
                if item is _STOP:
                    break
                yield item
        finally:
            self._watchers.remove(queue)
