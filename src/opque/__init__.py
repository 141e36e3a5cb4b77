"""opque — write-coalescing operation queue.

Collapses bursts of CREATE/UPDATE/DELETE intents against the same document
into one net operation, then hands the batch to a callback after a quiet
period. In-memory and single-process; depends only on pydantic.
"""

from __future__ import annotations

from .adapters import AsyncioTimer, ManualTimer, ThreadingTimer
from .exceptions import (
    ConfigurationError,
    InvalidSubmissionError,
    MissingIdentifierError,
    OpQueError,
    UnsupportedOperationError,
)
from .merge import DeepMergeStrategy, FieldLevelMergeStrategy, deep_merge
from .operations import (
    CREATE,
    DELETE,
    UNSET,
    UPDATE,
    OperationKind,
    PendingOperation,
)
from .options import OpQueOptions
from .ports import IMergeStrategy, ITimer, ITimerHandle
from .queue import OpQue
from .scheduler import FlushScheduler
from .store import CoalescingStore

__all__ = [
    "CREATE",
    "DELETE",
    "UNSET",
    "UPDATE",
    "AsyncioTimer",
    "CoalescingStore",
    "ConfigurationError",
    "DeepMergeStrategy",
    "FieldLevelMergeStrategy",
    "FlushScheduler",
    "IMergeStrategy",
    "ITimer",
    "ITimerHandle",
    "InvalidSubmissionError",
    "ManualTimer",
    "MissingIdentifierError",
    "OpQue",
    "OpQueError",
    "OpQueOptions",
    "OperationKind",
    "PendingOperation",
    "ThreadingTimer",
    "UnsupportedOperationError",
    "deep_merge",
]
