"""IMergeStrategy — how successive UPDATE documents are combined."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IMergeStrategy(ABC):
    """Abstract base class for document merge strategies."""

    @abstractmethod
    def merge(self, existing: Any, incoming: Any) -> Any:
        """Combine a pending document with an incoming partial update.

        Args:
            existing: The document currently held in the buffer.
            incoming: The document carried by the new UPDATE.

        Returns:
            The merged document. Neither argument may be mutated.
        """
        ...
