"""Test durable event queue."""
import logging
from datetime import datetime, timedelta, timezone

import pytest

from routekit.config import StorageConfig, sqlite_url
from routekit.database import StorageManager
from routekit.errors import EventQueueFull
from routekit.events.queue import EventQueueManager
from routekit.models.base import utcnow
from routekit.models.schemas import Event, EventType
from routekit.storage.repositories import EventStore


async def open_queue(tmp_path, max_queue_size=1000):
    storage = StorageManager(StorageConfig(database_url=sqlite_url(tmp_path / "events.db")))
    await storage.init_db()
    return storage, EventQueueManager(EventStore(storage), max_queue_size=max_queue_size)


def make_event(route_id="r1", payload=b"", minutes_ago=0.0) -> Event:
    return Event(
        route_id=route_id,
        type=EventType.MESSAGE_RECEIVED,
        payload=payload,
        timestamp=utcnow() - timedelta(minutes=minutes_ago),
    )


@pytest.mark.asyncio
async def test_enqueue_persists(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        event = make_event(payload=b"hello")
        await queue.enqueue(event)
        assert await queue.get_queue_size("r1") == 1
        stored = await queue.store.get(event.id)
        assert stored.payload == b"hello"
        assert not stored.processed
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_capacity_is_global(tmp_path):
    storage, queue = await open_queue(tmp_path, max_queue_size=2)
    try:
        await queue.enqueue(make_event("r1"))
        await queue.enqueue(make_event("r2"))
        with pytest.raises(EventQueueFull) as exc_info:
            await queue.enqueue(make_event("r3"))
        assert exc_info.value.max_size == 2
        assert await queue.get_total_queue_size() == 2
        assert len(await queue.get_unprocessed_events()) == 2
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_process_events_fifo_per_route(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        seen = []
        queue.register_processing_callback(lambda event: seen.append(event.payload))
        for i, payload in enumerate([b"1", b"2", b"3"]):
            await queue.enqueue(make_event("r1", payload, minutes_ago=3 - i))
        await queue.enqueue(make_event("r2", b"other"))

        assert await queue.process_events("r1") == 3
        assert seen == [b"1", b"2", b"3"]
        assert await queue.get_queue_size("r1") == 0
        assert await queue.get_queue_size("r2") == 1
        unprocessed = await queue.get_unprocessed_events()
        assert [e.route_id for e in unprocessed] == ["r2"]
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_failing_event_does_not_block_batch(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        seen = []

        async def handler(event):
            if event.payload == b"bad":
                raise ValueError("cannot handle")
            seen.append(event.payload)

        queue.register_processing_callback(handler)
        await queue.enqueue(make_event(payload=b"a", minutes_ago=3))
        bad = make_event(payload=b"bad", minutes_ago=2)
        await queue.enqueue(bad)
        await queue.enqueue(make_event(payload=b"c", minutes_ago=1))

        assert await queue.process_events("r1") == 2
        assert seen == [b"a", b"c"]
        remaining = await queue.get_queued_events("r1")
        assert [e.id for e in remaining] == [bad.id]
        assert not (await queue.store.get(bad.id)).processed
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_process_empty_route(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        assert await queue.process_events("nobody") == 0
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_process_all_events(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        seen = []
        queue.register_processing_callback(lambda event: seen.append(event.route_id))
        await queue.enqueue(make_event("r1", minutes_ago=2))
        await queue.enqueue(make_event("r2", minutes_ago=1))

        assert await queue.process_all_events() == 2
        assert seen == ["r1", "r2"]
        assert await queue.get_total_queue_size() == 0
        assert await queue.get_unprocessed_events() == []
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_restart_restores_unprocessed_in_order(tmp_path):
    storage, queue = await open_queue(tmp_path)
    first = make_event(payload=b"first", minutes_ago=5)
    second = make_event(payload=b"second", minutes_ago=1)
    await queue.enqueue(second)
    await queue.enqueue(first)
    await storage.close()

    storage, restarted = await open_queue(tmp_path)
    try:
        assert await restarted.load_from_database() == 2
        events = await restarted.get_queued_events("r1")
        assert [e.payload for e in events] == [b"first", b"second"]
        assert events[0].id == first.id
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_clear_events(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        await queue.enqueue(make_event("r1"))
        await queue.enqueue(make_event("r1"))
        await queue.enqueue(make_event("r2"))
        assert await queue.clear_events("r1") == 2
        assert await queue.get_queue_size("r1") == 0
        stats = await queue.get_stats()
        assert stats.to_dict() == {"total": 1, "max_queue_size": 1000, "per_route": {"r2": 1}}
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_cleanup_only_removes_old_processed_events(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        queue.register_processing_callback(lambda event: None)
        old = make_event("r1", minutes_ago=10 * 24 * 60)
        recent = make_event("r1", minutes_ago=1)
        pending_old = make_event("r2", minutes_ago=10 * 24 * 60)
        for event in (old, recent, pending_old):
            await queue.enqueue(event)
        await queue.process_events("r1")

        deleted = await queue.cleanup_old_events(retention_seconds=7 * 24 * 60 * 60)
        assert deleted == 1
        assert await queue.store.get(old.id) is None
        assert await queue.store.get(recent.id) is not None
        assert await queue.store.get(pending_old.id) is not None
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_offset_timestamps_restore_in_utc_order(tmp_path):
    storage, queue = await open_queue(tmp_path)
    plus_two = datetime(2026, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))
    utc_nine = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
    earlier = Event(route_id="r1", type=EventType.MESSAGE_RECEIVED, timestamp=plus_two)
    later = Event(route_id="r1", type=EventType.MESSAGE_RECEIVED, timestamp=utc_nine)
    assert earlier.timestamp == datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    await queue.enqueue(later)
    await queue.enqueue(earlier)
    await storage.close()

    storage, restarted = await open_queue(tmp_path)
    try:
        await restarted.load_from_database()
        events = await restarted.get_queued_events("r1")
        assert [e.id for e in events] == [earlier.id, later.id]
        assert events[0].timestamp == plus_two
        assert events[1].timestamp == utc_nine
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_process_all_keeps_events_enqueued_during_pass(tmp_path):
    storage, queue = await open_queue(tmp_path)
    try:
        late = make_event("r2", payload=b"late")

        async def handler(event):
            if event.payload == b"first":
                await queue.enqueue(late)

        queue.register_processing_callback(handler)
        await queue.enqueue(make_event("r1", payload=b"first"))

        assert await queue.process_all_events() == 1
        remaining = await queue.get_queued_events()
        assert [e.id for e in remaining] == [late.id]
    finally:
        await storage.close()


@pytest.mark.asyncio
async def test_restore_above_cap_warns(tmp_path, caplog):
    storage, queue = await open_queue(tmp_path, max_queue_size=5)
    for i in range(3):
        await queue.enqueue(make_event(minutes_ago=3 - i))
    await storage.close()

    storage, restarted = await open_queue(tmp_path, max_queue_size=2)
    try:
        with caplog.at_level(logging.WARNING, logger="routekit.events.queue"):
            assert await restarted.load_from_database() == 3
        assert "above the queue cap" in caplog.text
        with pytest.raises(EventQueueFull):
            await restarted.enqueue(make_event())
    finally:
        await storage.close()
