"""Bounded polling with a deadline."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class WaitResult:
    succeeded: bool
    attempts: int
    elapsed: float
    cancelled: bool = False


def wait_until(
    condition: Callable[[], bool],
    *,
    timeout: float,
    interval: float = 1.0,
    cancel_event: Optional[threading.Event] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Optional[Callable[[float], object]] = None,
) -> WaitResult:
    """
    Poll condition until it returns True, the deadline passes, or
    cancel_event is set.

    Pauses never run past the deadline, so a failed wait returns within
    timeout plus the duration of one probe.

    Args:
        condition: Probe; exceptions propagate to the caller
        timeout: Seconds until giving up
        interval: Seconds between probes
        cancel_event: Set it from another thread to abort the wait
        clock: Monotonic time source
        sleep: Pause function; defaults to cancel_event.wait

    Returns:
        WaitResult describing how the wait ended
    """
    stop = cancel_event or threading.Event()
    pause = sleep or stop.wait

    started = clock()
    deadline = started + timeout
    attempts = 0

    while True:
        attempts += 1
        if condition():
            return WaitResult(True, attempts, clock() - started)

        if stop.is_set():
            return WaitResult(False, attempts, clock() - started, cancelled=True)

        remaining = deadline - clock()
        if remaining <= 0:
            return WaitResult(False, attempts, clock() - started)

        pause(min(interval, remaining))
