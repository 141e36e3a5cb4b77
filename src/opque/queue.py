"""OpQue — public write-coalescing operation queue."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from .operations import UNSET, OperationKind
from .options import OpQueOptions
from .scheduler import FlushScheduler
from .store import CoalescingStore

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping
    from types import TracebackType

    from .operations import PendingOperation
    from .ports.merge import IMergeStrategy
    from .ports.timer import ITimer

logger = logging.getLogger("opque.queue")


class OpQue:
    """
    Collapses CREATE/UPDATE/DELETE intents per document and flushes them in
    batches once ``flush_delay`` seconds pass without a new submission.

    Usage::

        def write_batch(batch):
            for doc_id, op in batch.items():
                ...

        queue = OpQue(flush_delay=1.0, flush_callback=write_batch,
                      identifier_field="_id")
        queue.submit(CREATE, {"_id": 1, "name": "a"})
        queue.submit(UPDATE, {"_id": 1, "name": "b"})
        # one CREATE {"_id": 1, "name": "b"} reaches write_batch

    Options may also be passed as a mapping, using camelCase names::

        OpQue({"flushDelay": "0.5", "flushCallback": cb, "identifierField": "_id"})
    """

    def __init__(
        self,
        options: OpQueOptions | Mapping[str, Any] | None = None,
        *,
        timer: ITimer | None = None,
        merge_strategy: IMergeStrategy | None = None,
        **settings: Any,
    ) -> None:
        self.options = OpQueOptions.load(options, **settings)

        # Unregistered per-instance logger: its level belongs to this queue
        # only, while records still propagate through opque.queue.<name>.
        name = f"{logger.name}.{self.options.name}"
        self.log = logging.Logger(name, self.options.log_level)
        self.log.parent = logging.getLogger(name)

        lock = threading.RLock()
        self.store = CoalescingStore(
            self.options.identifier_field,
            merge_strategy,
            log=self.log,
            lock=lock,
        )
        self.scheduler = FlushScheduler(
            self.store,
            self.options.flush_callback,
            self.options.flush_delay,
            timer,
            log=self.log,
            lock=lock,
        )
        self.scheduler.start()

    @property
    def identifier_field(self) -> str:
        return self.options.identifier_field

    @property
    def flush_delay(self) -> float:
        return self.options.flush_delay

    @property
    def running(self) -> bool:
        return self.scheduler.running

    @property
    def pending(self) -> dict[Hashable, PendingOperation]:
        """Copy of the operations waiting for the next flush."""
        return self.store.snapshot()

    # ── Submission ───────────────────────────────────────────────────

    def submit(
        self,
        operation: OperationKind | str,
        document: Any,
        metadata: Any = UNSET,
    ) -> PendingOperation | None:
        """Queue an intent and restart the flush delay.

        Raises:
            UnsupportedOperationError: ``operation`` is not CREATE/UPDATE/DELETE.
            MissingIdentifierError: ``document`` has no identifier value.
        """
        record = self.store.apply(operation, document, metadata)
        self.scheduler.reset_delay()
        return record

    queue_operation = submit

    def create(self, document: Any, metadata: Any = UNSET) -> PendingOperation | None:
        return self.submit(OperationKind.CREATE, document, metadata)

    def update(self, document: Any, metadata: Any = UNSET) -> PendingOperation | None:
        return self.submit(OperationKind.UPDATE, document, metadata)

    def delete(self, document: Any, metadata: Any = UNSET) -> PendingOperation | None:
        return self.submit(OperationKind.DELETE, document, metadata)

    # ── Flushing / lifecycle ─────────────────────────────────────────

    def flush(self) -> int:
        """Deliver pending operations now. Returns the number delivered."""
        return self.scheduler.flush()

    def start(self) -> None:
        self.scheduler.start()

    def stop(self, *, flush: bool = False) -> int:
        """Stop the timer. With ``flush=True`` pending work is delivered first."""
        return self.scheduler.stop(flush=flush)

    def __len__(self) -> int:
        return len(self.store)

    def __enter__(self) -> OpQue:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop(flush=True)
