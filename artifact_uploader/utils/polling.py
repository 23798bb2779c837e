"""Fixed-interval polling with a deadline."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollOutcome(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Final outcome of a polling loop plus the last polled value."""
    outcome: PollOutcome
    value: Optional[T]
    attempts: int

    @property
    def finished(self) -> bool:
        return self.outcome in (PollOutcome.SUCCESS, PollOutcome.FAILURE)


async def poll_until(
    poll: Callable[[], Awaitable[T]],
    classify: Callable[[T], PollOutcome],
    interval: float,
    timeout: float,
    cancel_event: Optional[asyncio.Event] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult[T]:
    """
    Call `poll` every `interval` seconds until `classify` settles or `timeout` elapses.

    Each attempt sleeps first, then polls. Exceptions raised by `poll` or
    `classify` propagate. Setting `cancel_event` stops the loop before the
    next attempt.

    Args:
        poll: Coroutine function fetching the current value
        classify: Maps a value to PENDING, SUCCESS or FAILURE
        interval: Seconds to sleep before each attempt
        timeout: Total wait budget in seconds
        cancel_event: Optional cancellation signal
        sleep: Sleep coroutine (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        PollResult with SUCCESS/FAILURE, TIMED_OUT or CANCELLED
    """
    start = clock()
    attempts = 0
    last: Optional[T] = None

    while clock() - start < timeout:
        if cancel_event is not None and cancel_event.is_set():
            return PollResult(PollOutcome.CANCELLED, last, attempts)

        await sleep(interval)
        if cancel_event is not None and cancel_event.is_set():
            return PollResult(PollOutcome.CANCELLED, last, attempts)

        last = await poll()
        attempts += 1
        outcome = classify(last)
        if outcome in (PollOutcome.SUCCESS, PollOutcome.FAILURE):
            return PollResult(outcome, last, attempts)
        logger.debug("Poll attempt %d still pending", attempts)

    return PollResult(PollOutcome.TIMED_OUT, last, attempts)
