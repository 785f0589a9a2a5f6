"""
Unit Tests for the change feed
Tests for: subscribe/unsubscribe accounting, event masks, fan-out, webhook parsing
"""
import asyncio
import pytest

from portal.core.exceptions import SubscriptionError, ValidationError
from portal.services.change_feed import (
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
    parse_event_mask,
)


class TestEventMask:

    def test_wildcard(self):
        assert parse_event_mask("*") == frozenset(ChangeKind)

    def test_single_and_list(self):
        assert parse_event_mask("insert") == frozenset({ChangeKind.INSERT})
        assert parse_event_mask(["UPDATE", ChangeKind.DELETE]) == frozenset(
            {ChangeKind.UPDATE, ChangeKind.DELETE}
        )

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            parse_event_mask("TRUNCATE")


class TestSubscriptions:
    """Test handle accounting"""

    def test_open_handle_count(self, feed):
        first = feed.subscribe("timetable")
        second = feed.subscribe("announcements")

        assert feed.open_handle_count == 2

        feed.unsubscribe(first)
        feed.unsubscribe(second)

        assert feed.open_handle_count == 0
        assert first.closed and second.closed

    def test_unsubscribe_twice(self, feed):
        subscription = feed.subscribe("timetable")

        feed.unsubscribe(subscription)
        feed.unsubscribe(subscription)

        assert feed.open_handle_count == 0

    def test_closed_feed_refuses_subscriptions(self, feed):
        feed.subscribe("timetable")
        feed.close()

        assert feed.open_handle_count == 0
        with pytest.raises(SubscriptionError):
            feed.subscribe("timetable")

    def test_table_required(self, feed):
        with pytest.raises(SubscriptionError):
            feed.subscribe("")


class TestPublish:
    """Test fan-out to matching subscriptions"""

    @pytest.mark.asyncio
    async def test_delivers_to_matching_table(self, feed):
        timetable = feed.subscribe("timetable")
        announcements = feed.subscribe("announcements")

        delivered = await feed.emit("timetable", "INSERT", {"id": "t1"})

        assert delivered == 1
        event = await asyncio.wait_for(timetable.get(), timeout=1.0)
        assert event.kind == ChangeKind.INSERT
        assert event.record == {"id": "t1"}
        assert announcements.delivered == 0

    @pytest.mark.asyncio
    async def test_mask_filters_kinds(self, feed):
        deletes = feed.subscribe("timetable", ChangeKind.DELETE)

        assert await feed.emit("timetable", "UPDATE") == 0
        assert await feed.emit("timetable", "DELETE") == 1
        assert deletes.delivered == 1

    @pytest.mark.asyncio
    async def test_full_queue_drops(self):
        feed = ChangeFeed(queue_size=1)
        subscription = feed.subscribe("timetable")

        await feed.emit("timetable", "INSERT")
        delivered = await feed.emit("timetable", "INSERT")

        assert delivered == 0
        assert subscription.dropped == 1

    @pytest.mark.asyncio
    async def test_iteration_ends_on_unsubscribe(self, feed):
        subscription = feed.subscribe("timetable")
        received = []

        async def consume():
            async for event in subscription:
                received.append(event)

        consumer = asyncio.create_task(consume())
        await feed.emit("timetable", "UPDATE")
        await asyncio.sleep(0.01)
        feed.unsubscribe(subscription)
        await asyncio.wait_for(consumer, timeout=1.0)

        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_history_and_stats(self, feed):
        feed.subscribe("timetable")
        await feed.emit("timetable", "INSERT")
        await feed.emit("announcements", "DELETE")

        assert len(feed.get_history()) == 2
        assert [e.table for e in feed.get_history(table="announcements")] == ["announcements"]

        stats = feed.get_stats()
        assert stats["total_events"] == 2
        assert stats["open_subscriptions"] == 1
        assert stats["subscriptions_by_table"] == {"timetable": 1}

        feed.clear_history()
        assert feed.get_history() == []


class TestWebhookPayload:

    def test_from_webhook(self):
        event = ChangeEvent.from_webhook({
            "type": "update",
            "table": "timetable",
            "schema": "public",
            "record": {"id": "t1", "room": "B2"},
            "old_record": {"id": "t1", "room": "B1"},
        })

        assert event.kind == ChangeKind.UPDATE
        assert event.table == "timetable"
        assert event.old_record["room"] == "B1"
        assert event.to_dict()["kind"] == "UPDATE"

    def test_missing_table(self):
        with pytest.raises(ValidationError):
            ChangeEvent.from_webhook({"type": "INSERT"})

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            ChangeEvent.from_webhook({"type": "TRUNCATE", "table": "timetable"})
