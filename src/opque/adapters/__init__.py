"""Timer adapters for the flush scheduler."""

from .asyncio_timer import AsyncioTimer
from .memory import ManualTimer
from .threading_timer import ThreadingTimer

__all__ = [
    "AsyncioTimer",
    "ManualTimer",
    "ThreadingTimer",
]
