"""Configuration and submission errors for opque."""

from __future__ import annotations


class OpQueError(Exception):
    """Root exception for the opque package."""


class ConfigurationError(OpQueError, ValueError):
    """Raised at construction when options are missing or mistyped.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(self._format(self.errors))

    @staticmethod
    def _format(errors: dict[str, list[str]]) -> str:
        if not errors:
            return "invalid opque configuration"
        parts = [f"{field}: {'; '.join(msgs)}" for field, msgs in errors.items()]
        return "invalid opque configuration - " + ", ".join(parts)


class InvalidSubmissionError(OpQueError, ValueError):
    """Base class for errors raised by ``submit`` before any state changes."""


class UnsupportedOperationError(InvalidSubmissionError):
    """Raised when the operation kind is not CREATE, UPDATE or DELETE."""

    def __init__(self, operation: object) -> None:
        self.operation = operation
        super().__init__(
            f"the operation you are trying to queue is not supported: {operation!r}"
        )


class MissingIdentifierError(InvalidSubmissionError):
    """Raised when a document has no usable value at the identifier field."""

    def __init__(self, identifier_field: str, reason: str | None = None) -> None:
        self.identifier_field = identifier_field
        self.reason = reason

        msg = (
            "the document you are trying to queue does not have the "
            f"identifier {identifier_field!r}"
        )
        if reason:
            msg += f" - {reason}"

        super().__init__(msg)
