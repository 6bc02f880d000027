"""Bounded, fixed-interval polling for asynchronously produced artifacts.

``PollingRetrier`` calls a single "try once" operation until it succeeds or the
retry budget is spent. Failure of the final permitted attempt raises
``RetriesExhausted`` rather than the attempt's own error, and no delay follows
the final attempt.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TypeVar

from .errors import Cancelled, RetriesExhausted

T = TypeVar("T")

Sleeper = Callable[[float, threading.Event | None], None]


def interruptible_sleep(seconds: float, cancel: threading.Event | None) -> None:
    """Sleep for ``seconds``, waking early with ``Cancelled`` if ``cancel`` is set."""
    if cancel is None:
        time.sleep(seconds)
        return
    if cancel.wait(seconds):
        raise Cancelled("Polling cancelled while waiting between attempts")


class PollingRetrier:
    """Retry a readiness probe on a fixed delay with a hard attempt ceiling.

    Args:
        delay: Seconds to wait between a failed attempt and the next one
        max_attempts: Total attempts allowed, including the first (>= 1)
        retry_on: Exception types that count as a failed attempt. Anything else
            propagates from ``poll_until_ready`` unchanged.
        sleep: Delay primitive, ``sleep(seconds, cancel)``. Must raise
            ``Cancelled`` when the event is set during the wait.
    """

    def __init__(
        self,
        delay: float = 1.0,
        max_attempts: int = 20,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: Sleeper | None = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if delay < 0:
            raise ValueError("delay must be non-negative")
        self.delay = delay
        self.max_attempts = max_attempts
        self.retry_on = retry_on
        self._sleep = sleep or interruptible_sleep

    def poll_until_ready(
        self, attempt: Callable[[], T], cancel: threading.Event | None = None
    ) -> T:
        """Call ``attempt`` until it returns, sleeping ``delay`` between failures.

        Returns:
            The value returned by the first successful attempt

        Raises:
            RetriesExhausted: Every permitted attempt failed
            Cancelled: ``cancel`` was set during an attempt or a delay
        """
        attempts_remaining = self.max_attempts
        attempts_made = 0

        while True:
            _raise_if_cancelled(cancel)
            attempts_made += 1
            try:
                result = attempt()
            except Cancelled:
                raise
            except self.retry_on as exc:
                attempts_remaining -= 1
                if attempts_remaining == 0:
                    raise RetriesExhausted(attempts_made) from exc
                _raise_if_cancelled(cancel)
                self._sleep(self.delay, cancel)
                continue

            # A result that lands after cancellation is stale
            _raise_if_cancelled(cancel)
            return result


def poll_until_ready(
    attempt: Callable[[], T],
    delay: float,
    max_attempts: int,
    cancel: threading.Event | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Sleeper | None = None,
) -> T:
    """Functional form of ``PollingRetrier(...).poll_until_ready(attempt)``."""
    retrier = PollingRetrier(
        delay=delay, max_attempts=max_attempts, retry_on=retry_on, sleep=sleep
    )
    return retrier.poll_until_ready(attempt, cancel=cancel)


def _raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise Cancelled("Polling cancelled")
