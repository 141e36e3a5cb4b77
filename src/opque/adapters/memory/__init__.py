from .timer import ManualTimer, ManualTimerHandle

__all__ = [
    "ManualTimer",
    "ManualTimerHandle",
]
