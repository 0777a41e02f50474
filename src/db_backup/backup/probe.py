"""Reachability probing with exponential backoff.

Serverless PostgreSQL providers suspend idle databases; the first
connection after a suspension can fail or stall while the compute wakes
up.  ``wait_until_reachable`` retries a liveness probe until it succeeds
or the deadline passes.

Usage:
    from db_backup.adapters.postgres import PostgresProbe
    from db_backup.backup.probe import wait_until_reachable

    report = await wait_until_reachable(PostgresProbe(url), timeout_seconds=120)
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field

from db_backup.adapters.base import LivenessProbe
from db_backup.backup.errors import ReachabilityTimeout
from db_backup.backup.models import ProbeReport

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class BackoffPolicy(BaseModel):
    """Retry timing for the reachability loop (seconds)."""

    model_config = ConfigDict(frozen=True)

    initial_delay: float = Field(default=1.0, gt=0)
    max_delay: float = Field(default=30.0, gt=0)
    attempt_timeout: float = Field(default=10.0, gt=0)


class BackoffState:
    """Mutable retry state: ``attempt``, ``delay`` and ``deadline``.

    All times come from the clock passed to ``start``; the state never
    reads the clock on its own.
    """

    def __init__(self, policy: BackoffPolicy, started: float, deadline: float) -> None:
        self.policy = policy
        self.started = started
        self.deadline = deadline
        self.attempt = 0
        self.delay = min(policy.initial_delay, policy.max_delay)

    @classmethod
    def start(cls, policy: BackoffPolicy, timeout_seconds: float, now: float) -> "BackoffState":
        return cls(policy, started=now, deadline=now + timeout_seconds)

    def remaining(self, now: float) -> float:
        return self.deadline - now

    def elapsed(self, now: float) -> float:
        return now - self.started

    def next_sleep(self, now: float) -> float:
        """Return how long to sleep before the next attempt and double the delay."""
        sleep_for = max(0.0, min(self.delay, self.remaining(now), self.policy.max_delay))
        self.delay = min(self.delay * 2, self.policy.max_delay)
        return sleep_for


def backoff_delays(policy: BackoffPolicy, count: int) -> list[float]:
    """Uncapped-by-deadline delay sequence: ``min(2**i * initial, max)``."""
    state = BackoffState(policy, started=0.0, deadline=float("inf"))
    return [state.next_sleep(0.0) for _ in range(count)]


async def wait_until_reachable(
    probe: LivenessProbe,
    timeout_seconds: float,
    policy: BackoffPolicy | None = None,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
) -> ProbeReport:
    """Poll ``probe`` until it succeeds or ``timeout_seconds`` elapse.

    Each attempt is bounded by ``min(policy.attempt_timeout, remaining)``,
    and sleeps never extend past the deadline, so a probe that never
    succeeds fails between ``timeout_seconds`` and
    ``timeout_seconds + policy.max_delay`` after the call.

    Cancellation (``asyncio.CancelledError``) is never retried.

    Args:
        probe: Liveness probe; ``ping()`` raises on failure.
        timeout_seconds: Total time budget, must be positive.
        policy: Backoff timing (defaults: 1s initial, 30s cap).
        clock: Monotonic clock in seconds.
        sleep: Awaitable sleep function.

    Returns:
        ``ProbeReport`` with the number of attempts and elapsed seconds.

    Raises:
        ReachabilityTimeout: If no attempt succeeded before the deadline.
        ValueError: If ``timeout_seconds`` is not positive.
    """
    if timeout_seconds <= 0:
        raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
    policy = policy or BackoffPolicy()
    state = BackoffState.start(policy, timeout_seconds, clock())
    last_error: Exception | None = None

    logger.info(f"Waiting for database to be reachable (timeout: {timeout_seconds:g}s)...")

    while clock() < state.deadline:
        state.attempt += 1
        attempt_timeout = min(policy.attempt_timeout, state.remaining(clock()))
        try:
            await asyncio.wait_for(probe.ping(), timeout=attempt_timeout)
        except Exception as e:
            last_error = e
            now = clock()
            remaining = state.remaining(now)
            reason = str(e) or type(e).__name__
            logger.info(
                f"Connection attempt {state.attempt} failed "
                f"({max(0.0, remaining):.0f}s remaining): {reason}"
            )
            if remaining <= 0:
                break
            await sleep(state.next_sleep(now))
            continue

        elapsed = state.elapsed(clock())
        logger.info(f"Database is reachable (attempt {state.attempt}, {elapsed:.1f}s)")
        return ProbeReport(attempts=state.attempt, elapsed=elapsed)

    raise ReachabilityTimeout(
        attempts=state.attempt,
        elapsed=state.elapsed(clock()),
        timeout=timeout_seconds,
        last_error=last_error,
    )
