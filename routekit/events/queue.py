"""
RouteKit Event Queue — Never Lose Events.

Events produced while a route is unreachable are buffered in memory and
persisted immediately, so they survive restarts. When the route comes back
they are replayed, in FIFO order, through the registered processing
callbacks. Supports:
- Durable enqueue (persisted before enqueue returns)
- Global capacity limit across all routes
- Best-effort replay: one failing event never blocks the rest of the batch
- Retention purge of processed events

Delivery is at-least-once: an event whose callbacks fail stays unprocessed
in the store and is replayed again after a restart.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Union
import asyncio
import logging

from routekit.errors import EventQueueFull
from routekit.models.base import utcnow
from routekit.models.schemas import Event
from routekit.storage.repositories import EventStore

logger = logging.getLogger(__name__)

ProcessingCallback = Callable[[Event], Union[Awaitable[None], None]]


@dataclass
class QueueStats:
    """Aggregate statistics for the in-memory queue."""
    total: int = 0
    max_queue_size: int = 0
    per_route: dict[str, int] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "max_queue_size": self.max_queue_size,
            "per_route": dict(self.per_route or {}),
        }


class EventQueueManager:
    """Durable FIFO of pending events, mirrored in memory."""

    def __init__(self, store: EventStore, max_queue_size: int = 1000):
        self.store = store
        self.max_queue_size = max_queue_size
        self._queue: list[Event] = []
        self._callbacks: list[ProcessingCallback] = []
        self._lock = asyncio.Lock()
        self._route_locks: dict[str, asyncio.Lock] = {}

    # --- Queue operations ---

    async def enqueue(self, event: Event) -> None:
        """Buffer and persist an event. Raises EventQueueFull at capacity."""
        async with self._lock:
            if len(self._queue) >= self.max_queue_size:
                raise EventQueueFull(self.max_queue_size)

            self._queue.append(event)
            try:
                await self.store.append_event(event)
            except Exception:
                self._queue.remove(event)
                raise

        logger.debug("Queued %s event %s for route %s", event.type.value, event.id, event.route_id)

    async def process_events(self, route_id: str) -> int:
        """
        Replay the queued events of one route through every callback.
        Returns how many events were processed successfully.
        """
        async with self._route_lock(route_id):
            async with self._lock:
                events = [e for e in self._queue if e.route_id == route_id]

            processed = 0
            for event in events:
                if not await self._dispatch(event):
                    continue
                async with self._lock:
                    try:
                        await self.store.mark_processed(event.id)
                    except Exception:
                        logger.exception("Failed to mark event %s processed", event.id)
                        continue
                    self._queue = [e for e in self._queue if e.id != event.id]
                processed += 1

        if events:
            logger.info(
                "Replayed %d/%d queued events for route %s",
                processed, len(events), route_id,
            )
        return processed

    async def process_all_events(self) -> int:
        """
        Replay every queued event, then drop the replayed batch from memory.

        Only the snapshot taken at the start of the pass is dropped; events
        enqueued while it runs stay queued for the next pass. Events whose
        callbacks failed stay unprocessed in the store only and come back
        on the next load_from_database().
        """
        async with self._lock:
            events = list(self._queue)

        processed = 0
        for event in events:
            if not await self._dispatch(event):
                continue
            try:
                await self.store.mark_processed(event.id)
            except Exception:
                logger.exception("Failed to mark event %s processed", event.id)
                continue
            processed += 1

        replayed = {e.id for e in events}
        async with self._lock:
            self._queue = [e for e in self._queue if e.id not in replayed]

        return processed

    async def clear_events(self, route_id: str) -> int:
        """Drop a route's events from memory and from the store."""
        async with self._lock:
            self._queue = [e for e in self._queue if e.route_id != route_id]
            deleted = await self.store.delete_events(route_id)
        self._route_locks.pop(route_id, None)
        return deleted

    async def get_queue_size(self, route_id: str) -> int:
        async with self._lock:
            return sum(1 for e in self._queue if e.route_id == route_id)

    async def get_total_queue_size(self) -> int:
        async with self._lock:
            return len(self._queue)

    async def get_queued_events(self, route_id: str | None = None) -> list[Event]:
        async with self._lock:
            return [e for e in self._queue if route_id is None or e.route_id == route_id]

    async def get_stats(self) -> QueueStats:
        async with self._lock:
            per_route: dict[str, int] = {}
            for event in self._queue:
                per_route[event.route_id] = per_route.get(event.route_id, 0) + 1
            return QueueStats(
                total=len(self._queue),
                max_queue_size=self.max_queue_size,
                per_route=per_route,
            )

    # --- Processing callbacks ---

    def register_processing_callback(self, callback: ProcessingCallback) -> None:
        """Callbacks run for every event, in registration order."""
        self._callbacks.append(callback)

    async def _dispatch(self, event: Event) -> bool:
        try:
            for callback in self._callbacks:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
        except Exception:
            logger.exception("Failed to process event %s for route %s", event.id, event.route_id)
            return False
        return True

    def _route_lock(self, route_id: str) -> asyncio.Lock:
        lock = self._route_locks.get(route_id)
        if lock is None:
            lock = self._route_locks[route_id] = asyncio.Lock()
        return lock

    # --- Persistence ---

    async def load_from_database(self) -> int:
        """
        Rebuild the in-memory queue from unprocessed rows (startup).

        Every unprocessed row is restored, even past max_queue_size; enqueue
        keeps raising EventQueueFull until replay brings the queue back
        under the cap.
        """
        events = await self.store.query_unprocessed()
        async with self._lock:
            self._queue = events
        if events:
            logger.info("Restored %d unprocessed events from storage", len(events))
        if len(events) > self.max_queue_size:
            logger.warning(
                "Restored %d unprocessed events, above the queue cap of %d",
                len(events), self.max_queue_size,
            )
        return len(events)

    async def get_unprocessed_events(self) -> list[Event]:
        return await self.store.query_unprocessed()

    async def cleanup_old_events(self, retention_seconds: float) -> int:
        """Delete processed events older than the retention window."""
        cutoff = utcnow() - timedelta(seconds=retention_seconds)
        deleted = await self.store.delete_processed_older_than(cutoff)
        if deleted:
            logger.info("Purged %d processed events older than %s", deleted, cutoff.isoformat())
        return deleted
