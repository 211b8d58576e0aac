"""
RouteKit Reconnection Manager — Per-Route Backoff Scheduling.

Decides whether a dropped route may be reconnected and how long to wait
before the next attempt. It does not perform the attempt; the facade runs
the attempt in a task whose handle is stored here so it can be cancelled.

At most one reconnection is in flight per route: trigger_reconnection
refuses while a previous attempt has not been completed.
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
import asyncio
import logging

from routekit.errors import (
    MaxReconnectionAttemptsReached,
    ReconnectionDisabled,
    ReconnectionInProgress,
)
from routekit.resilience.retry import compute_backoff

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconnectionConfig:
    """Reconnection budget and backoff for one route (seconds)."""

    enabled: bool = True
    max_attempts: int = 5
    initial_delay: float = 1.0
    max_delay: float = 60.0
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return compute_backoff(
            attempt, self.initial_delay, self.backoff_multiplier, self.max_delay
        )

    @classmethod
    def default(cls) -> "ReconnectionConfig":
        return cls()


@dataclass
class ReconnectionAttemptRecord:
    """Reconnection progress for one route."""
    route_id: str
    attempt: int = 0
    last_attempt_at: datetime | None = None
    is_reconnecting: bool = False
    task: asyncio.Task | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": self.route_id,
            "attempt": self.attempt,
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
            "is_reconnecting": self.is_reconnecting,
        }


class ReconnectionManager:
    """Tracks reconnection attempts and backoff per route."""

    def __init__(self, default_config: ReconnectionConfig | None = None):
        self._default = default_config or ReconnectionConfig.default()
        self._configs: dict[str, ReconnectionConfig] = {}
        self._attempts: dict[str, ReconnectionAttemptRecord] = {}
        self._lock = asyncio.Lock()

    # --- Configuration ---

    async def configure(self, route_id: str, config: ReconnectionConfig) -> None:
        async with self._lock:
            self._configs[route_id] = config

    async def get_config(self, route_id: str) -> ReconnectionConfig:
        async with self._lock:
            return self._config_for(route_id)

    def _config_for(self, route_id: str) -> ReconnectionConfig:
        return self._configs.get(route_id, self._default)

    # --- Attempts ---

    async def trigger_reconnection(self, route_id: str) -> float:
        """
        Start a reconnection attempt and return the delay before it.

        Raises ReconnectionDisabled, ReconnectionInProgress or
        MaxReconnectionAttemptsReached (the latter also forgets the route).
        """
        async with self._lock:
            config = self._config_for(route_id)
            if not config.enabled:
                raise ReconnectionDisabled(route_id)

            record = self._attempts.get(route_id) or ReconnectionAttemptRecord(route_id=route_id)
            if record.is_reconnecting:
                raise ReconnectionInProgress(route_id)

            record.attempt += 1
            if record.attempt > config.max_attempts:
                self._attempts.pop(route_id, None)
                raise MaxReconnectionAttemptsReached(route_id, config.max_attempts)

            delay = config.delay_for(record.attempt)
            record.is_reconnecting = True
            record.last_attempt_at = datetime.now(timezone.utc)
            self._attempts[route_id] = record

        logger.info(
            "Reconnection %d/%d for route %s in %.2fs",
            record.attempt, config.max_attempts, route_id, delay,
        )
        return delay

    async def complete_reconnection(self, route_id: str, success: bool) -> None:
        """Success forgets the route; failure only frees the in-flight slot."""
        async with self._lock:
            if success:
                self._attempts.pop(route_id, None)
                return
            record = self._attempts.get(route_id)
            if record is not None:
                record.is_reconnecting = False

    async def reset(self, route_id: str) -> None:
        async with self._lock:
            self._attempts.pop(route_id, None)

    async def can_reconnect(self, route_id: str) -> bool:
        async with self._lock:
            config = self._config_for(route_id)
            if not config.enabled:
                return False
            return self._current_attempt(route_id) < config.max_attempts

    async def get_current_attempt(self, route_id: str) -> int:
        async with self._lock:
            return self._current_attempt(route_id)

    async def is_reconnecting(self, route_id: str) -> bool:
        async with self._lock:
            record = self._attempts.get(route_id)
            return record.is_reconnecting if record else False

    async def get_next_delay(self, route_id: str) -> float:
        """Delay the next attempt would wait, without recording anything."""
        async with self._lock:
            config = self._config_for(route_id)
            return config.delay_for(self._current_attempt(route_id) + 1)

    def _current_attempt(self, route_id: str) -> int:
        record = self._attempts.get(route_id)
        return record.attempt if record else 0

    # --- Task handles ---

    async def attach_task(self, route_id: str, task: asyncio.Task) -> None:
        """Remember the task running the in-flight reconnection."""
        async with self._lock:
            record = self._attempts.get(route_id)
            if record is not None:
                record.task = task

    async def get_task(self, route_id: str) -> asyncio.Task | None:
        async with self._lock:
            record = self._attempts.get(route_id)
            return record.task if record else None

    async def cancel(self, route_id: str) -> bool:
        """Cancel the scheduled reconnection for a route and forget it."""
        async with self._lock:
            record = self._attempts.pop(route_id, None)
        if record is None or record.task is None or record.task.done():
            return False
        if record.task is asyncio.current_task():
            return False
        record.task.cancel()
        logger.info("Cancelled reconnection for route %s", route_id)
        return True
