"""Test retry manager and backoff."""
import pytest

from routekit.errors import MaxRetryAttemptsReached
from routekit.resilience.retry import RetryManager, RetryPolicy, compute_backoff


async def no_sleep(delay: float) -> None:
    return None


def test_backoff_doubles_until_cap():
    policy = RetryPolicy(max_attempts=10, initial_delay=1.0, max_delay=60.0, backoff_multiplier=2.0)
    delays = [policy.delay_for(n) for n in range(1, 8)]
    assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 60.0]


def test_compute_backoff_never_exceeds_max():
    assert compute_backoff(50, 0.5, 3.0, 10.0) == 10.0


def test_policy_presets():
    assert RetryPolicy.default() == RetryPolicy(max_attempts=3, initial_delay=0.5)
    assert RetryPolicy.aggressive().max_attempts == 5
    assert RetryPolicy.aggressive().initial_delay == 0.1
    assert RetryPolicy.conservative().max_attempts == 2
    assert RetryPolicy.conservative().initial_delay == 1.0


@pytest.mark.asyncio
async def test_record_attempt_returns_delays():
    retry = RetryManager(sleep=no_sleep)
    policy = RetryPolicy(max_attempts=3, initial_delay=1.0, max_delay=60.0)
    assert await retry.record_attempt("op", policy) == 1.0
    assert await retry.record_attempt("op", policy) == 2.0
    assert await retry.get_current_attempt("op") == 2
    assert await retry.should_retry("op", policy)


@pytest.mark.asyncio
async def test_record_attempt_past_budget_raises_and_forgets():
    retry = RetryManager(sleep=no_sleep)
    policy = RetryPolicy(max_attempts=2, initial_delay=1.0)
    await retry.record_attempt("op", policy)
    await retry.record_attempt("op", policy)
    assert not await retry.should_retry("op", policy)

    with pytest.raises(MaxRetryAttemptsReached) as exc_info:
        await retry.record_attempt("op", policy)
    assert exc_info.value.max_attempts == 2
    assert await retry.get_current_attempt("op") == 0


@pytest.mark.asyncio
async def test_operations_have_independent_budgets():
    retry = RetryManager(sleep=no_sleep)
    policy = RetryPolicy(max_attempts=1)
    await retry.record_attempt("a", policy)
    assert not await retry.should_retry("a", policy)
    assert await retry.should_retry("b", policy)


@pytest.mark.asyncio
async def test_execute_succeeds_after_failures_and_resets():
    calls = 0
    sleeps = []

    async def record_sleep(delay):
        sleeps.append(delay)

    async def flaky():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise ConnectionError("down")
        return "ok"

    retry = RetryManager(sleep=record_sleep)
    policy = RetryPolicy(max_attempts=3, initial_delay=1.0)
    result = await retry.execute_with_retry("connect_r1", policy, flaky)

    assert result == "ok"
    assert calls == 3
    assert sleeps == [1.0, 2.0]
    assert await retry.get_current_attempt("connect_r1") == 0


@pytest.mark.asyncio
async def test_execute_exhausted_raises_last_failure():
    calls = 0

    async def always_fails():
        nonlocal calls
        calls += 1
        raise TimeoutError(f"attempt {calls}")

    retry = RetryManager(sleep=no_sleep)
    with pytest.raises(TimeoutError, match="attempt 4"):
        await retry.execute_with_retry("op", RetryPolicy(max_attempts=3), always_fails)
    # initial call plus three retries
    assert calls == 4


@pytest.mark.asyncio
async def test_execute_with_zero_budget_calls_once():
    calls = 0

    async def always_fails():
        nonlocal calls
        calls += 1
        raise ValueError("nope")

    retry = RetryManager(sleep=no_sleep)
    with pytest.raises(ValueError):
        await retry.execute_with_retry("op", RetryPolicy(max_attempts=0), always_fails)
    assert calls == 1


@pytest.mark.asyncio
async def test_execute_starts_from_clean_budget():
    retry = RetryManager(sleep=no_sleep)
    policy = RetryPolicy(max_attempts=2)
    await retry.record_attempt("op", policy)
    await retry.record_attempt("op", policy)

    async def ok():
        return 42

    assert await retry.execute_with_retry("op", policy, ok) == 42
    assert await retry.get_current_attempt("op") == 0
