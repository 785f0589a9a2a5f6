"""
Change Feed - Table Change Notifications

Pub/sub channel for row mutations in the directory store:
- Transport bridges (the database webhook endpoint, tests) publish events
- Live sync controllers subscribe per table and consume events as a stream

Each subscription is its own bounded queue. Consumers iterate it:

    subscription = feed.subscribe("timetable")
    async for event in subscription:
        ...
    feed.unsubscribe(subscription)

Unsubscribing ends the iteration. Nothing in here knows which transport the
events came from.
"""

from typing import Dict, Any, List, Optional, FrozenSet, Union, Iterable
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from collections import defaultdict
import asyncio
import uuid

from portal.core.config import settings
from portal.core.exceptions import SubscriptionError, ValidationError
from portal.core.logging_config import logger


class ChangeKind(str, Enum):
    """Row mutation kinds"""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


ALL_EVENTS = "*"

EventMask = Union[str, ChangeKind, Iterable[Union[str, ChangeKind]]]


def parse_event_mask(event_mask: EventMask) -> FrozenSet[ChangeKind]:
    """Turn "*", a single kind or a list of kinds into a set of kinds"""
    if event_mask == ALL_EVENTS:
        return frozenset(ChangeKind)
    if isinstance(event_mask, (str, ChangeKind)):
        event_mask = [event_mask]
    return frozenset(to_change_kind(kind) for kind in event_mask)


def to_change_kind(kind: Union[str, ChangeKind]) -> ChangeKind:
    if isinstance(kind, ChangeKind):
        return kind
    try:
        return ChangeKind(str(kind).upper())
    except ValueError:
        raise ValidationError(f"Unknown change kind: {kind!r}", field="event_mask")


@dataclass
class ChangeEvent:
    """A single row mutation"""
    table: str
    kind: ChangeKind
    record: Dict[str, Any] = field(default_factory=dict)
    old_record: Dict[str, Any] = field(default_factory=dict)
    schema: str = "public"
    committed_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "kind": self.kind.value,
            "record": self.record,
            "old_record": self.old_record,
            "schema": self.schema,
            "committed_at": self.committed_at.isoformat(),
        }

    @classmethod
    def from_webhook(cls, payload: Dict[str, Any]) -> "ChangeEvent":
        """
        Parse a database webhook body:
        {"type": "INSERT", "table": "timetable", "schema": "public",
         "record": {...}, "old_record": null}
        """
        table = payload.get("table")
        if not table:
            raise ValidationError("Webhook payload has no table", field="table")
        try:
            kind = ChangeKind(str(payload.get("type", "")).upper())
        except ValueError:
            raise ValidationError(
                f"Unknown change type: {payload.get('type')!r}", field="type"
            )
        return cls(
            table=table,
            kind=kind,
            record=payload.get("record") or {},
            old_record=payload.get("old_record") or {},
            schema=payload.get("schema") or "public",
        )


_CLOSED = object()


class Subscription:
    """
    Handle for one table subscription.

    Async-iterable; iteration stops once the subscription is closed.
    """

    def __init__(self, table: str, kinds: FrozenSet[ChangeKind], max_size: int):
        self.id = str(uuid.uuid4())[:8]
        self.table = table
        self.kinds = kinds
        self.created_at = datetime.utcnow()
        self.delivered = 0
        self.dropped = 0
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def matches(self, event: ChangeEvent) -> bool:
        return not self._closed and event.table == self.table and event.kind in self.kinds

    def deliver(self, event: ChangeEvent) -> bool:
        """Queue an event for the consumer; False if the queue is full"""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        self.delivered += 1
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Consumer is not blocked on an empty queue; it sees the flag next
            pass

    async def get(self) -> Optional[ChangeEvent]:
        """Wait for the next event; None once closed"""
        if self._closed:
            return None
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            return None
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event

    def __repr__(self) -> str:
        kinds = ",".join(sorted(k.value for k in self.kinds))
        return f"<Subscription {self.id} {self.table} [{kinds}]{' closed' if self._closed else ''}>"


class ChangeFeed:
    """
    In-process change feed.

    Features:
    - Per-table subscriptions with an event-kind mask
    - Queue per subscription (bounded, drops with a warning when full)
    - Open-handle accounting
    - Event history
    """

    def __init__(self, queue_size: int = 100, max_history: int = 200):
        self._queue_size = queue_size
        self._subscriptions: Dict[str, Subscription] = {}
        self._history: List[ChangeEvent] = []
        self._max_history = max_history
        self._event_count = 0
        self._closed = False

    @property
    def open_handle_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, table: str, event_mask: EventMask = ALL_EVENTS) -> Subscription:
        """
        Subscribe to changes of one table.

        Args:
            table: Table to watch
            event_mask: "*" for every kind, or one/several ChangeKind values

        Raises:
            SubscriptionError: the feed has been shut down
        """
        if self._closed:
            raise SubscriptionError(table, "change feed is closed")
        if not table:
            raise SubscriptionError(table, "table name is required")

        subscription = Subscription(table, parse_event_mask(event_mask), self._queue_size)
        self._subscriptions[subscription.id] = subscription
        logger.debug(f"[ChangeFeed] Opened {subscription!r}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Close a subscription; calling it twice is harmless"""
        subscription.close()
        if self._subscriptions.pop(subscription.id, None) is not None:
            logger.debug(f"[ChangeFeed] Closed {subscription!r}")

    async def publish(self, event: ChangeEvent) -> int:
        """
        Fan an event out to every matching subscription.

        Returns:
            Number of subscriptions the event was queued on
        """
        self._event_count += 1
        self._history.append(event)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        logger.debug(f"[ChangeFeed] Publishing {event.kind.value} on {event.table}")

        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(event):
                continue
            if subscription.deliver(event):
                delivered += 1
            else:
                logger.warning(
                    f"[ChangeFeed] Queue full for {subscription!r}, dropped {event.kind.value}"
                )
        return delivered

    async def emit(
        self,
        table: str,
        kind: Union[ChangeKind, str],
        record: Optional[Dict[str, Any]] = None,
        old_record: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Convenience method to build and publish an event"""
        event = ChangeEvent(
            table=table,
            kind=to_change_kind(kind),
            record=record or {},
            old_record=old_record or {},
        )
        return await self.publish(event)

    def close(self) -> None:
        """Close every subscription and refuse new ones"""
        self._closed = True
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription)

    # ========== History & Debugging ==========

    def get_history(self, table: Optional[str] = None, limit: int = 100) -> List[ChangeEvent]:
        events = self._history
        if table:
            events = [e for e in events if e.table == table]
        return events[-limit:]

    def get_stats(self) -> Dict[str, Any]:
        per_table = defaultdict(int)
        for subscription in self._subscriptions.values():
            per_table[subscription.table] += 1
        return {
            "total_events": self._event_count,
            "history_size": len(self._history),
            "open_subscriptions": self.open_handle_count,
            "subscriptions_by_table": dict(per_table),
            "closed": self._closed,
        }

    def clear_history(self) -> None:
        self._history.clear()


# ========== Global Instance ==========

_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Get the process-wide change feed used by the HTTP layer"""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed(
            queue_size=settings.CHANGE_FEED_QUEUE_SIZE,
            max_history=settings.CHANGE_FEED_HISTORY,
        )
        logger.info("[ChangeFeed] Global change feed initialized")
    return _change_feed


def reset_change_feed() -> None:
    """Shut down and drop the global change feed"""
    global _change_feed
    if _change_feed is not None:
        _change_feed.close()
        _change_feed = None
