"""AsyncioTimer — ITimer for callers living on an asyncio event loop."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ..ports.timer import ITimer

if TYPE_CHECKING:
    from collections.abc import Callable


class AsyncioTimer(ITimer):
    """Schedules flushes with ``loop.call_later``.

    Without an explicit ``loop`` the running loop is used, so the queue must
    be created and fed from inside that loop::

        async def main() -> None:
            queue = OpQue(flush_delay=0.5, flush_callback=write_batch,
                          identifier_field="id", timer=AsyncioTimer())
            queue.submit(CREATE, {"id": 1})

    Callbacks run on the loop thread, so submissions and flushes never
    interleave.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(
        self, delay: float, callback: Callable[[], None]
    ) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)
