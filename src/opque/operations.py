"""OperationKind and PendingOperation — the records held by the buffer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import UnsupportedOperationError


class OperationKind(str, Enum):
    """Write intents a caller can queue against a document.

    - **CREATE**: the document does not exist downstream yet.
    - **UPDATE**: a partial change to an existing document.
    - **DELETE**: the document should be removed downstream.
    """

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: object) -> OperationKind:
        """Coerce an enum member or its exact string value.

        Raises:
            UnsupportedOperationError: for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise UnsupportedOperationError(value)


CREATE = OperationKind.CREATE
UPDATE = OperationKind.UPDATE
DELETE = OperationKind.DELETE

#: Marks metadata the caller did not pass, as opposed to an explicit ``None``.
UNSET: Any = object()


@dataclass(frozen=True)
class PendingOperation:
    """The net operation waiting to be flushed for one identifier."""

    kind: OperationKind
    document: dict[str, Any]
    metadata: Any = None

    @property
    def is_create(self) -> bool:
        return self.kind is OperationKind.CREATE

    @property
    def is_update(self) -> bool:
        return self.kind is OperationKind.UPDATE

    @property
    def is_delete(self) -> bool:
        return self.kind is OperationKind.DELETE
