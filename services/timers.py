"""One-shot timer helpers shared by the poller and the reservation store."""

from __future__ import annotations

import threading
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def start_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Run ``callback`` once after ``delay`` seconds on a daemon thread."""
    # Event.wait rejects timeouts above TIMEOUT_MAX.
    timer = threading.Timer(min(max(delay, 0.0), threading.TIMEOUT_MAX), callback)
    timer.daemon = True
    timer.start()
    return timer
