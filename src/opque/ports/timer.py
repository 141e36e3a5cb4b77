"""ITimer — schedule-after-delay primitive used by the flush scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class ITimerHandle(Protocol):
    """A pending scheduled call."""

    def cancel(self) -> None:
        """Prevent the call from running. Safe to call more than once."""
        ...


@runtime_checkable
class ITimer(Protocol):
    """
    Runs a callback once after a delay.

    Implementations: ``ThreadingTimer``, ``AsyncioTimer``, ``ManualTimer``.
    """

    def schedule(self, delay: float, callback: Callable[[], None]) -> ITimerHandle:
        """Call ``callback`` once after ``delay`` seconds."""
        ...
