"""Readiness waiting for the setup instance.

A blocking wait-for-condition with a fixed poll interval and no attempt
ceiling: a slow first start is tolerated for as long as the child is alive.
The clock is injectable so tests run without real sleeps.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
import logging
import threading
import time
from typing import Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Time source used by the wait loop."""

    def monotonic(self) -> float: ...

    def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real wall-clock time."""

    def monotonic(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


class ReadinessStatus(StrEnum):
    """Outcome of a readiness wait."""

    READY = "ready"
    PROCESS_EXITED = "process_exited"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ReadinessResult:
    """Result of waiting for a condition."""

    status: ReadinessStatus
    attempts: int
    elapsed_s: float

    def is_ready(self) -> bool:
        return self.status == ReadinessStatus.READY


def wait_for_condition(
    condition: Callable[[], bool],
    *,
    alive: Callable[[], bool],
    interval: float = 1.0,
    clock: Clock | None = None,
    cancel: threading.Event | None = None,
    on_wait: Callable[[int], None] | None = None,
) -> ReadinessResult:
    """Poll ``condition`` until it holds, the process dies, or the wait is cancelled.

    Args:
        condition: Check returning True once ready
        alive: Returns False once the watched process has exited
        interval: Seconds between checks
        clock: Time source (defaults to the system clock)
        cancel: Event that aborts the wait when set
        on_wait: Called with the attempt number before each sleep

    Returns:
        The wait result
    """
    clock = clock or SystemClock()
    start = clock.monotonic()
    attempts = 0

    def result(status: ReadinessStatus) -> ReadinessResult:
        return ReadinessResult(status, attempts, clock.monotonic() - start)

    while alive():
        if cancel is not None and cancel.is_set():
            return result(ReadinessStatus.CANCELLED)
        attempts += 1
        if condition():
            return result(ReadinessStatus.READY)
        if on_wait is not None:
            on_wait(attempts)
        clock.sleep(interval)

    return result(ReadinessStatus.PROCESS_EXITED)
