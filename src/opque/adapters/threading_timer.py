"""ThreadingTimer — ITimer backed by daemon ``threading.Timer`` threads."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from ..ports.timer import ITimer

if TYPE_CHECKING:
    from collections.abc import Callable


class ThreadingTimer(ITimer):
    """Default timer. Each schedule starts one daemon thread.

    The callback runs on the timer thread, so whatever it touches must be
    guarded by a lock (the scheduler and store both hold one).
    """

    def __init__(self, *, daemon: bool = True) -> None:
        self.daemon = daemon

    def schedule(
        self, delay: float, callback: Callable[[], None]
    ) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = self.daemon
        timer.start()
        return timer
