"""Test the retry executor — backoff, timeouts, cancellation, exhaustion."""

from __future__ import annotations

import asyncio
import random

import pytest

from attachguard.engine._base import QueryResult
from attachguard.errors import codes
from attachguard.errors._types import (
    AttemptTimeoutError,
    EngineError,
    ErrorKind,
    RetriesExhaustedError,
)
from attachguard.retry import (
    MAX_DELAY_MS,
    ExecutionOutcome,
    RetryExecutor,
    RetryPolicy,
    compute_delay_ms,
)


class TestPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay_ms == 1000
        assert policy.exponential_backoff is True
        assert policy.timeout_ms == 30_000

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_delay(self) -> None:
        with pytest.raises(ValueError, match="base_delay_ms"):
            RetryPolicy(base_delay_ms=-1)


class TestDelay:
    def test_constant_without_backoff(self) -> None:
        policy = RetryPolicy(base_delay_ms=250, exponential_backoff=False)
        assert compute_delay_ms(1, policy) == 250
        assert compute_delay_ms(5, policy) == 250

    def test_exponential_with_jitter_bounds(self) -> None:
        policy = RetryPolicy(base_delay_ms=1000)
        rng = random.Random(7)
        for attempt in (1, 2, 3):
            delay = compute_delay_ms(attempt, policy, rng)
            low = 1000 * 2 ** (attempt - 1)
            assert low <= delay < low * 1.3

    def test_seeded_rng_is_deterministic(self) -> None:
        policy = RetryPolicy()
        assert compute_delay_ms(2, policy, random.Random(1)) == compute_delay_ms(
            2, policy, random.Random(1)
        )

    def test_capped(self) -> None:
        policy = RetryPolicy(base_delay_ms=10_000)
        assert compute_delay_ms(10, policy, random.Random(0)) == MAX_DELAY_MS


def _attempts(*responses):
    """Attempt factory that replays ``responses`` and counts calls."""
    calls: list[int] = []
    queue = list(responses)

    async def attempt():
        calls.append(1)
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return await item()
        return item

    return attempt, calls


def test_success_first_try(fake_sleep, sleeps) -> None:
    attempt, calls = _attempts(QueryResult(row_count=1))
    outcome = asyncio.run(RetryExecutor(sleep=fake_sleep).run(attempt))
    assert outcome.success is True
    assert outcome.attempts_made == 1
    assert outcome.result.row_count == 1
    assert len(calls) == 1
    assert sleeps == []


def test_non_retryable_error_returned_unchanged(fake_sleep) -> None:
    error = EngineError("Catalog Error: table not found")
    attempt, calls = _attempts(error)
    outcome = asyncio.run(RetryExecutor(sleep=fake_sleep).run(attempt))
    assert outcome.success is False
    assert outcome.error.original is error
    assert outcome.error.kind == ErrorKind.OTHER
    assert outcome.attempts_made == 1
    assert len(calls) == 1


def test_timeout_retried_then_succeeds(fake_sleep, sleeps) -> None:
    async def slow():
        await asyncio.sleep(1)

    attempt, calls = _attempts(slow, QueryResult())
    policy = RetryPolicy(timeout_ms=20, base_delay_ms=100, exponential_backoff=False)
    outcome = asyncio.run(RetryExecutor(sleep=fake_sleep).run(attempt, policy))
    assert outcome.success is True
    assert outcome.attempts_made == 2
    assert sleeps == [0.1]


def test_retries_exhausted(fake_sleep, sleeps) -> None:
    attempt, calls = _attempts(
        AttemptTimeoutError(10), AttemptTimeoutError(10), AttemptTimeoutError(10),
    )
    policy = RetryPolicy(max_attempts=3, base_delay_ms=1000)
    outcome = asyncio.run(
        RetryExecutor(sleep=fake_sleep, rng=random.Random(3)).run(attempt, policy)
    )
    assert outcome.success is False
    assert outcome.attempts_made == 3
    assert len(calls) == 3
    assert outcome.error.code == codes.RETRIES_EXHAUSTED
    assert outcome.error.kind == ErrorKind.TIMEOUT
    assert isinstance(outcome.error.original, RetriesExhaustedError)
    assert str(outcome.error.original).startswith("Failed after 3 attempts:")
    # Sleeps only between attempts, growing exponentially.
    assert len(sleeps) == 2
    assert 1.0 <= sleeps[0] < 1.3
    assert 2.0 <= sleeps[1] < 2.6


def test_custom_retry_kinds(fake_sleep) -> None:
    attempt, calls = _attempts(EngineError("Failed to fetch"), QueryResult())
    outcome = asyncio.run(
        RetryExecutor(sleep=fake_sleep).run(
            attempt, RetryPolicy(base_delay_ms=0), retry_on=frozenset({ErrorKind.CROSS_ORIGIN}),
        )
    )
    assert outcome.success is True
    assert len(calls) == 2


def test_cancel_before_start() -> None:
    attempt, calls = _attempts(QueryResult())

    async def run():
        cancel = asyncio.Event()
        cancel.set()
        return await RetryExecutor().run(attempt, cancel=cancel)

    outcome = asyncio.run(run())
    assert outcome.cancelled is True
    assert outcome.success is False
    assert outcome.attempts_made == 0
    assert calls == []


def test_cancel_in_flight_attempt() -> None:
    started = []
    cancelled = []

    async def attempt():
        started.append(1)
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            cancelled.append(1)
            raise

    async def run():
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)
        outcome = await RetryExecutor().run(attempt, RetryPolicy(timeout_ms=0), cancel=cancel)
        await asyncio.sleep(0)
        return outcome

    outcome = asyncio.run(run())
    assert outcome.cancelled is True
    assert outcome.attempts_made == 1
    assert started == [1]
    assert cancelled == [1]


def test_cancel_during_backoff_skips_remaining_attempts() -> None:
    attempt, calls = _attempts(AttemptTimeoutError(10), QueryResult())

    async def run():
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.02, cancel.set)
        policy = RetryPolicy(base_delay_ms=5000, exponential_backoff=False)
        return await RetryExecutor().run(attempt, policy, cancel=cancel)

    outcome = asyncio.run(run())
    assert outcome.cancelled is True
    assert outcome.attempts_made == 1
    assert len(calls) == 1


def test_unwrap() -> None:
    assert ExecutionOutcome(success=True, result=42).unwrap() == 42
    outcome = asyncio.run(RetryExecutor().run(_attempts(EngineError("boom"))[0]))
    with pytest.raises(EngineError, match="boom"):
        outcome.unwrap()
