"""
RouteKit Retry Manager — Bounded Retry with Exponential Backoff.

Executes async operations and retries failures according to a RetryPolicy.
Bookkeeping is isolated per operation id, so concurrent sends never share
a retry budget while idempotent operations ("connect_<route>") reuse one.

Delay for attempt n: min(initial_delay * multiplier ** (n - 1), max_delay)
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar
import asyncio
import logging

from routekit.errors import MaxRetryAttemptsReached

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(
    attempt: int,
    initial_delay: float,
    multiplier: float,
    max_delay: float,
) -> float:
    """Exponential backoff capped at max_delay. attempt is 1-based."""
    delay = initial_delay * (multiplier ** (attempt - 1))
    return min(delay, max_delay)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently an operation is retried (seconds)."""

    max_attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        return compute_backoff(
            attempt, self.initial_delay, self.backoff_multiplier, self.max_delay
        )

    @classmethod
    def default(cls) -> "RetryPolicy":
        return cls()

    @classmethod
    def aggressive(cls) -> "RetryPolicy":
        return cls(max_attempts=5, initial_delay=0.1)

    @classmethod
    def conservative(cls) -> "RetryPolicy":
        return cls(max_attempts=2, initial_delay=1.0)


@dataclass
class RetryRecord:
    """Retry bookkeeping for one operation id."""
    operation_id: str
    policy: RetryPolicy
    attempt: int = 0
    last_attempt_at: datetime | None = None


class RetryManager:
    """Retry executor keyed by caller-chosen operation ids."""

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._records: dict[str, RetryRecord] = {}
        self._lock = asyncio.Lock()
        self._sleep = sleep

    async def should_retry(self, operation_id: str, policy: RetryPolicy) -> bool:
        """True while the attempt count is below the policy budget."""
        async with self._lock:
            record = self._records.get(operation_id)
            attempt = record.attempt if record else 0
            return attempt < policy.max_attempts

    async def record_attempt(self, operation_id: str, policy: RetryPolicy) -> float:
        """
        Count one more attempt and return the delay to wait before it.
        Raises MaxRetryAttemptsReached (and forgets the operation) once the
        budget is exceeded.
        """
        async with self._lock:
            record = self._records.get(operation_id)
            if record is None:
                record = RetryRecord(operation_id=operation_id, policy=policy)
            record.attempt += 1

            if record.attempt > policy.max_attempts:
                self._records.pop(operation_id, None)
                raise MaxRetryAttemptsReached(operation_id, policy.max_attempts)

            record.policy = policy
            record.last_attempt_at = datetime.now(timezone.utc)
            self._records[operation_id] = record
            return policy.delay_for(record.attempt)

    async def reset(self, operation_id: str) -> None:
        async with self._lock:
            self._records.pop(operation_id, None)

    async def get_current_attempt(self, operation_id: str) -> int:
        async with self._lock:
            record = self._records.get(operation_id)
            return record.attempt if record else 0

    async def execute_with_retry(
        self,
        operation_id: str,
        policy: RetryPolicy,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run operation until it succeeds or the policy budget is spent.

        The lock is never held while the operation runs or while sleeping.
        When the budget is spent the last failure of the operation itself
        propagates.
        """
        await self.reset(operation_id)

        while True:
            try:
                result = await operation()
            except Exception as exc:
                if not await self.should_retry(operation_id, policy):
                    logger.warning(
                        "Giving up on %s after %d retries: %s",
                        operation_id, policy.max_attempts, exc,
                    )
                    raise
                delay = await self.record_attempt(operation_id, policy)
                logger.warning(
                    "Operation %s failed (%s), retrying in %.2fs",
                    operation_id, exc, delay,
                )
                await self._sleep(delay)
                continue

            await self.reset(operation_id)
            return result
