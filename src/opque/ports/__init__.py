"""Collaborator protocols consumed by the store and the scheduler."""

from .merge import IMergeStrategy
from .timer import ITimer, ITimerHandle

__all__ = [
    "IMergeStrategy",
    "ITimer",
    "ITimerHandle",
]
