"""
RouteKit Events — Durable Queueing and Replay.

- EventQueueManager: per-route FIFO persisted through EventStore
- Event / EventType: the queued records themselves
"""
from routekit.events.queue import (
    EventQueueManager,
    ProcessingCallback,
    QueueStats,
)
from routekit.models.schemas import Event, EventType

__all__ = [
    "Event",
    "EventType",
    "EventQueueManager",
    "ProcessingCallback",
    "QueueStats",
]
