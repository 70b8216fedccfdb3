"""Bounded retry with backoff, per-attempt timeouts, and cancellation.

One logical operation is a sequence of attempts run strictly one after the
other. Each attempt races a timer; a timed-out attempt is abandoned (left to
finish in the background, its outcome discarded) and counts as a consumed
TIMEOUT attempt. A caller-supplied ``asyncio.Event`` cancels the in-flight
attempt at once and skips any remaining retries.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from attachguard.errors import codes
from attachguard.errors._types import (
    AttemptTimeoutError,
    ClassifiedError,
    ErrorKind,
    RetriesExhaustedError,
)
from attachguard.errors.classify import ErrorClassifier

logger = logging.getLogger(__name__)

MAX_DELAY_MS = 60_000
JITTER_FRACTION = 0.3

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    exponential_backoff: bool = True
    timeout_ms: int = 30_000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must not be negative")


@dataclass
class ExecutionOutcome:
    """Terminal value of one logical execution."""

    success: bool
    result: Any = None
    error: ClassifiedError | None = None
    attempts_made: int = 0
    used_proxy: bool = False
    cancelled: bool = False
    statement: str | None = None

    def unwrap(self) -> Any:
        """Return the result, or raise the underlying error."""
        if self.error is not None:
            raise self.error.original
        return self.result


class _AttemptCancelled(Exception):
    pass


def compute_delay_ms(attempt: int, policy: RetryPolicy, rng: random.Random | None = None) -> float:
    """Delay before the retry that follows attempt number ``attempt`` (1-based).

    ``base`` without backoff, else ``min(base * 2**(n-1) * (1 + jitter), 60000)``
    with jitter drawn uniformly from [0, 0.3).
    """
    if not policy.exponential_backoff:
        return float(policy.base_delay_ms)
    jitter = (rng or random).random() * JITTER_FRACTION
    return min(policy.base_delay_ms * 2 ** (attempt - 1) * (1 + jitter), float(MAX_DELAY_MS))


def _discard(task: asyncio.Future) -> None:
    """Consume the outcome of an abandoned attempt."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("abandoned attempt finished with error: %s", exc)


class RetryExecutor:
    def __init__(
        self,
        *,
        classifier: ErrorClassifier | None = None,
        sleep: Sleep | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._classifier = classifier or ErrorClassifier()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng

    async def _attempt_once(
        self,
        attempt: Callable[[], Awaitable[Any]],
        timeout_ms: int,
        cancel: asyncio.Event | None,
    ) -> Any:
        task = asyncio.ensure_future(attempt())
        waiters: set[asyncio.Future] = {task}
        cancel_waiter: asyncio.Future | None = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        timeout = timeout_ms / 1000 if timeout_ms > 0 else None
        try:
            done, _ = await asyncio.wait(
                waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if task in done:
            return task.result()
        if cancel is not None and cancel.is_set():
            task.cancel()
            raise _AttemptCancelled
        task.add_done_callback(_discard)
        raise AttemptTimeoutError(timeout_ms)

    async def _backoff(self, delay_s: float, cancel: asyncio.Event | None) -> bool:
        """Sleep between attempts. Returns True if cancelled meanwhile."""
        if cancel is None:
            await self._sleep(delay_s)
            return False

        sleeper = asyncio.ensure_future(self._sleep(delay_s))
        cancel_waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({sleeper, cancel_waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (sleeper, cancel_waiter):
                if not t.done():
                    t.cancel()
        return cancel.is_set()

    async def run(
        self,
        attempt: Callable[[], Awaitable[Any]],
        policy: RetryPolicy | None = None,
        *,
        cancel: asyncio.Event | None = None,
        retry_on: frozenset[ErrorKind] = frozenset({ErrorKind.TIMEOUT}),
        auto_mode: bool = True,
    ) -> ExecutionOutcome:
        """Run ``attempt`` until it succeeds, fails terminally, or the budget is spent.

        Errors whose kind is not in ``retry_on`` end the run immediately and
        are returned unchanged. Exhausting the budget returns a
        ``RetriesExhaustedError`` that names the attempt count and wraps the
        last error.
        """
        policy = policy or RetryPolicy()
        last: ClassifiedError | None = None
        attempts = 0

        for n in range(1, policy.max_attempts + 1):
            if cancel is not None and cancel.is_set():
                return ExecutionOutcome(success=False, cancelled=True, attempts_made=attempts)
            attempts = n

            try:
                result = await self._attempt_once(attempt, policy.timeout_ms, cancel)
            except _AttemptCancelled:
                return ExecutionOutcome(success=False, cancelled=True, attempts_made=n)
            except Exception as e:
                last = self._classifier.classify(e, auto_mode=auto_mode)
                if last.kind not in retry_on:
                    return ExecutionOutcome(success=False, error=last, attempts_made=n)
                if n == policy.max_attempts:
                    break

                delay = compute_delay_ms(n, policy, self._rng)
                logger.warning(
                    "attempt %d/%d failed (%s); retrying in %.0fms",
                    n, policy.max_attempts, last.kind.value, delay,
                )
                if await self._backoff(delay / 1000, cancel):
                    return ExecutionOutcome(success=False, cancelled=True, attempts_made=n)
                continue

            return ExecutionOutcome(success=True, result=result, attempts_made=n)

        assert last is not None
        exhausted = RetriesExhaustedError(attempts, last.original)
        logger.error("giving up after %d attempts: %s", attempts, last.message)
        return ExecutionOutcome(
            success=False,
            error=ClassifiedError(last.kind, exhausted, codes.RETRIES_EXHAUSTED, status=last.status),
            attempts_made=attempts,
        )
