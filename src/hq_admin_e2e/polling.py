"""Retry a UI assertion until it holds or a deadline passes."""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Awaitable, Iterator, Sequence
from typing import Any, Callable, Optional

from playwright.sync_api import Error as PlaywrightError

LOGGER = logging.getLogger(__name__)

# Same back-off as Playwright's ``toPass``: the last interval repeats.
DEFAULT_POLL_INTERVALS: tuple[float, ...] = (0.1, 0.25, 0.5, 1.0)
DEFAULT_RETRY_ON: tuple[type[BaseException], ...] = (AssertionError, PlaywrightError)


class PollTimeoutError(AssertionError):
    """Raised when a polled condition does not hold within its timeout."""

    def __init__(
        self,
        timeout: float,
        attempts: int,
        last_error: Optional[BaseException],
        description: Optional[str] = None,
    ) -> None:
        self.timeout = timeout
        self.attempts = attempts
        self.last_error = last_error
        subject = description or "condition"
        message = f"{subject} not met within {timeout:g}s after {attempts} attempt(s)"
        if last_error is not None:
            message = f"{message}: {last_error}"
        super().__init__(message)


def poll_until(
    predicate: Callable[[], object],
    timeout: float,
    *,
    intervals: Sequence[float] = DEFAULT_POLL_INTERVALS,
    retry_on: tuple[type[BaseException], ...] = DEFAULT_RETRY_ON,
    description: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Call ``predicate`` until it passes or ``timeout`` seconds elapse.

    The predicate passes when it raises nothing listed in ``retry_on`` and does
    not return ``False``. Anything else it raises propagates at once. On
    timeout a :class:`PollTimeoutError` chained to the last failure is raised.
    The predicate must be safe to repeat; see :func:`trigger_and_poll` for
    one-off actions.
    """

    deadline = clock() + timeout
    delays = _delays(intervals)
    attempts = 0
    while True:
        attempts += 1
        last_error = _attempt(predicate, retry_on)
        if last_error is None:
            return
        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeoutError(timeout, attempts, last_error, description) from last_error
        delay = min(next(delays), remaining)
        LOGGER.debug("Condition not met (%s); retrying in %.2fs", last_error, delay)
        sleep(delay)


async def apoll_until(
    predicate: Callable[[], Awaitable[object]],
    timeout: float,
    *,
    intervals: Sequence[float] = DEFAULT_POLL_INTERVALS,
    retry_on: tuple[type[BaseException], ...] = DEFAULT_RETRY_ON,
    description: Optional[str] = None,
    clock: Callable[[], float] = time.monotonic,
) -> None:
    """Async counterpart of :func:`poll_until` for awaitable predicates."""

    deadline = clock() + timeout
    delays = _delays(intervals)
    attempts = 0
    while True:
        attempts += 1
        try:
            result = await predicate()
        except retry_on as exc:
            last_error: BaseException = exc
        else:
            if result is not False:
                return
            last_error = AssertionError("condition returned False")
        remaining = deadline - clock()
        if remaining <= 0:
            raise PollTimeoutError(timeout, attempts, last_error, description) from last_error
        await asyncio.sleep(min(next(delays), remaining))


def trigger_and_poll(
    trigger: Callable[[], object],
    predicate: Callable[[], object],
    timeout: float,
    **kwargs: Any,
) -> None:
    """Run ``trigger`` exactly once, then poll ``predicate``.

    Keeps state-changing actions such as clicks out of the retried block.
    """

    trigger()
    poll_until(predicate, timeout, **kwargs)


def _attempt(
    predicate: Callable[[], object],
    retry_on: tuple[type[BaseException], ...],
) -> Optional[BaseException]:
    try:
        result = predicate()
    except retry_on as exc:
        return exc
    if result is False:
        return AssertionError("condition returned False")
    return None


def _delays(intervals: Sequence[float]) -> Iterator[float]:
    if not intervals:
        raise ValueError("At least one polling interval is required")
    return itertools.chain(intervals[:-1], itertools.repeat(intervals[-1]))
