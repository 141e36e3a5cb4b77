"""FlushScheduler — self-resetting delay that drains the store to a callback."""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import inspect
import logging
import threading
from typing import TYPE_CHECKING, Any

from .adapters.threading_timer import ThreadingTimer

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

    from .operations import PendingOperation
    from .ports.timer import ITimer, ITimerHandle
    from .store import CoalescingStore

    FlushCallback = Callable[[dict[Hashable, PendingOperation]], Any]

logger = logging.getLogger("opque.scheduler")


def _on_flush_task_done(
    task: asyncio.Future[Any] | concurrent.futures.Future[Any],
) -> None:
    """Log failures of async flush callbacks instead of dropping them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Async flush callback failed: %s", exc, exc_info=exc)


async def _await(awaitable: Any) -> Any:
    return await awaitable


class FlushScheduler:
    """Delivers the store's contents once ``flush_delay`` passes quietly.

    Every :meth:`reset_delay` cancels the outstanding timer and starts a new
    one, so a burst of submissions ends in a single flush. After each
    timer-driven flush the timer is re-armed; ticks that find the store empty
    do not call the callback.

    States: idle (no timer) -> :meth:`start` -> armed. :meth:`stop` returns
    to idle and nothing fires afterwards.
    """

    def __init__(
        self,
        store: CoalescingStore,
        flush_callback: FlushCallback,
        flush_delay: float,
        timer: ITimer | None = None,
        *,
        log: logging.Logger | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self.store = store
        self.flush_callback = flush_callback
        self.flush_delay = flush_delay
        self.timer = timer or ThreadingTimer()
        self._log = log or logger
        self._lock = lock or threading.RLock()
        self._handle: ITimerHandle | None = None
        self._generation = 0
        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> bool:
        return self._running

    # ── Lifecycle ────────────────────────────────────────────────────

    def start(self) -> None:
        """Arm the timer. On an armed scheduler this just restarts the delay."""
        with self._lock:
            self._running = True
            with contextlib.suppress(RuntimeError):
                self._loop = asyncio.get_running_loop()
            self._rearm()
        self._log.debug("Flush scheduler armed (delay=%.3fs)", self.flush_delay)

    def stop(self, *, flush: bool = False) -> int:
        """Cancel the timer for good. Optionally deliver what is pending first.

        Returns the number of entries delivered by the final flush.
        """
        with self._lock:
            self._running = False
            self._cancel()
        self._log.debug("Flush scheduler stopped")
        return self.flush() if flush else 0

    def reset_delay(self) -> None:
        """Restart the delay from zero. Ignored once stopped."""
        with self._lock:
            if self._running:
                self._rearm()

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Hand the pending batch to the callback. Returns entries delivered.

        An empty store means no callback call. Exceptions the callback raises
        propagate to the caller; the batch is not requeued.
        """
        batch = self.store.take()
        if not batch:
            return 0
        self._log.debug("Flushing %d pending operation(s)", len(batch))
        result = self.flush_callback(batch)
        if inspect.isawaitable(result):
            self._dispatch_awaitable(result)
        return len(batch)

    def _dispatch_awaitable(self, result: Any) -> None:
        """Schedule an async callback result without waiting for it.

        On a thread with a running loop it becomes a task there. From a timer
        thread it is handed to the loop captured by :meth:`start`. With no loop
        at all it cannot run and is closed.
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None:
            task = asyncio.ensure_future(result, loop=running)
            task.add_done_callback(_on_flush_task_done)
            return

        loop = self._loop
        if loop is None or loop.is_closed():
            self._log.error(
                "Flush callback returned an awaitable outside a running event "
                "loop; it will not be awaited"
            )
            if inspect.iscoroutine(result):
                result.close()
            return
        future = asyncio.run_coroutine_threadsafe(_await(result), loop)
        future.add_done_callback(_on_flush_task_done)

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
            self._handle = None
        try:
            self.flush()
        except Exception:
            self._log.exception("Flush callback failed; batch dropped")
        with self._lock:
            if self._running and self._handle is None:
                self._rearm()

    # ── Timer handle ─────────────────────────────────────────────────

    def _rearm(self) -> None:
        self._cancel()
        self._generation += 1
        generation = self._generation
        self._handle = self.timer.schedule(
            self.flush_delay, lambda: self._on_timer(generation)
        )

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
