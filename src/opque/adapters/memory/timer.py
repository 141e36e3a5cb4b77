"""ManualTimer — virtual-clock fake of ITimer for unit tests."""

from __future__ import annotations

import heapq
import itertools
from typing import TYPE_CHECKING

from ...ports.timer import ITimer

if TYPE_CHECKING:
    from collections.abc import Callable


class ManualTimerHandle:
    """Handle returned by :meth:`ManualTimer.schedule`."""

    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimer(ITimer):
    """In-memory implementation of ``ITimer``.

    Time only moves when :meth:`advance` is called. Callbacks that come due
    run synchronously, in due order, inside ``advance``.
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._heap: list[tuple[float, int, ManualTimerHandle]] = []
        self._seq = itertools.count()

    def schedule(
        self, delay: float, callback: Callable[[], None]
    ) -> ManualTimerHandle:
        self._compact()
        handle = ManualTimerHandle(self.now + delay, callback)
        heapq.heappush(self._heap, (handle.due, next(self._seq), handle))
        return handle

    def _compact(self) -> None:
        if any(h.cancelled for _, _, h in self._heap):
            self._heap = [e for e in self._heap if not e[2].cancelled]
            heapq.heapify(self._heap)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire everything due. Returns calls made."""
        target = self.now + seconds
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            due, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self.now = due
            handle.callback()
            fired += 1
        self.now = target
        return fired

    # ── Test helpers ─────────────────────────────────────────────

    @property
    def pending(self) -> int:
        """Number of scheduled, uncancelled callbacks."""
        return sum(1 for _, _, h in self._heap if not h.cancelled)

    def clear(self) -> None:
        self._heap.clear()
