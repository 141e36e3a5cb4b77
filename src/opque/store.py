"""CoalescingStore — per-identifier buffer that collapses write intents."""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Mapping
from copy import deepcopy
from typing import TYPE_CHECKING, Any

from .exceptions import MissingIdentifierError
from .merge import DeepMergeStrategy, as_document
from .operations import UNSET, OperationKind, PendingOperation

if TYPE_CHECKING:
    from .ports.merge import IMergeStrategy

logger = logging.getLogger("opque.store")


class CoalescingStore:
    """
    Holds at most one :class:`PendingOperation` per document identifier.

    Each call to :meth:`apply` folds the incoming intent into the record
    already pending for that identifier:

    ========  ==============  ================  ================  =================
    incoming  nothing         CREATE            UPDATE            DELETE
    ========  ==============  ================  ================  =================
    CREATE    insert          warn, overwrite   warn, overwrite   warn, overwrite
    UPDATE    insert          merge (CREATE)    merge (UPDATE)    warn, keep DELETE
    DELETE    insert          remove entry      replace           replace
    ========  ==============  ================  ================  =================

    All mutation happens under an instance lock, so the store is safe to
    share between a caller thread and a timer thread.
    """

    def __init__(
        self,
        identifier_field: str,
        merge_strategy: IMergeStrategy | None = None,
        *,
        log: logging.Logger | None = None,
        lock: threading.RLock | None = None,
    ) -> None:
        self.identifier_field = identifier_field
        self.merge_strategy = merge_strategy or DeepMergeStrategy()
        self._log = log or logger
        self._lock = lock or threading.RLock()
        self._pending: dict[Hashable, PendingOperation] = {}

    # ── Identification ───────────────────────────────────────────────

    def identify(self, document: Any) -> Hashable:
        """Return the coalescing key of ``document``.

        Raises:
            MissingIdentifierError: if the document is not a mapping, or has
                no value (or ``None``) at the identifier field, or the value
                cannot be used as a dict key.
        """
        doc = as_document(document)
        if not isinstance(doc, Mapping):
            raise MissingIdentifierError(
                self.identifier_field,
                f"expected a mapping, got {type(document).__name__}",
            )
        key = doc.get(self.identifier_field)
        if key is None:
            raise MissingIdentifierError(self.identifier_field)
        if not isinstance(key, Hashable):
            raise MissingIdentifierError(
                self.identifier_field,
                f"value of type {type(key).__name__} is not hashable",
            )
        return key

    # ── Merge policy ─────────────────────────────────────────────────

    def apply(
        self,
        kind: OperationKind | str,
        document: Any,
        metadata: Any = UNSET,
    ) -> PendingOperation | None:
        """Fold one intent into the buffer.

        Returns the record now pending for the document's identifier, or
        ``None`` when the intent cancelled it out.
        """
        op = OperationKind.parse(kind)
        key = self.identify(document)
        doc = as_document(document)

        with self._lock:
            if op is OperationKind.CREATE:
                return self._apply_create(key, doc, metadata)
            if op is OperationKind.UPDATE:
                return self._apply_update(key, doc, metadata)
            return self._apply_delete(key, doc, metadata)

    def _apply_create(
        self, key: Hashable, doc: dict[str, Any], metadata: Any
    ) -> PendingOperation:
        current = self._pending.get(key)
        if current is not None:
            self._log.warning(
                "Received a create for %r which already has a pending %s; "
                "overwriting it",
                key,
                current.kind.value,
            )
        return self._put(key, OperationKind.CREATE, doc, metadata)

    def _apply_update(
        self, key: Hashable, doc: dict[str, Any], metadata: Any
    ) -> PendingOperation:
        current = self._pending.get(key)
        if current is None:
            return self._put(key, OperationKind.UPDATE, doc, metadata)

        if current.is_delete:
            self._log.warning(
                "Received an update for %r which is queued to be deleted; "
                "ignoring the update",
                key,
            )
            return current

        merged = self.merge_strategy.merge(current.document, doc)
        self._log.debug(
            "Merged update for %r into pending %s: %r",
            key,
            current.kind.value,
            merged,
        )
        keep = current.metadata if metadata is UNSET else metadata
        record = PendingOperation(kind=current.kind, document=merged, metadata=keep)
        self._pending[key] = record
        return record

    def _apply_delete(
        self, key: Hashable, doc: dict[str, Any], metadata: Any
    ) -> PendingOperation | None:
        current = self._pending.get(key)
        if current is not None and current.is_create:
            del self._pending[key]
            self._log.debug("Dropped pending create for %r because of delete", key)
            return None
        return self._put(key, OperationKind.DELETE, doc, metadata)

    def _put(
        self, key: Hashable, kind: OperationKind, doc: dict[str, Any], metadata: Any
    ) -> PendingOperation:
        record = PendingOperation(
            kind=kind,
            document=deepcopy(doc),
            metadata=None if metadata is UNSET else metadata,
        )
        self._pending[key] = record
        self._log.debug("Queued %s for %r", kind.value, key)
        return record

    # ── Buffer access ────────────────────────────────────────────────

    def take(self) -> dict[Hashable, PendingOperation]:
        """Swap the buffer for an empty one and return what it held."""
        with self._lock:
            batch = self._pending
            self._pending = {}
            return batch

    def snapshot(self) -> dict[Hashable, PendingOperation]:
        with self._lock:
            return dict(self._pending)

    def get(self, key: Hashable) -> PendingOperation | None:
        with self._lock:
            return self._pending.get(key)

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending
