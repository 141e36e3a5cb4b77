"""OpQueOptions — eager validation of construction options."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .exceptions import ConfigurationError

_LEVEL_ALIASES = {"WARN": "WARNING", "FATAL": "CRITICAL", "TRACE": "DEBUG"}


class OpQueOptions(BaseModel):
    """Validated options for :class:`~opque.queue.OpQue`.

    Accepts both snake_case names and their camelCase aliases
    (``flushDelay``, ``flushCallback``, ``identifierField``, ``logLevel``).
    ``flush_delay`` is in seconds, finite, and may be given as a numeric string.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        frozen=True,
        extra="forbid",
    )

    flush_delay: float = Field(gt=0, allow_inf_nan=False)
    flush_callback: Callable[..., Any]
    identifier_field: StrictStr = Field(min_length=1)
    log_level: int | str = "ERROR"
    name: StrictStr = Field(default="default", min_length=1)

    @field_validator("flush_delay", mode="before")
    @classmethod
    def _reject_bool_delay(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("flush_delay must be a number or numeric string")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError("log_level must be a level name or number")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            name = _LEVEL_ALIASES.get(name, name)
            level = logging.getLevelName(name)
            if isinstance(level, int):
                return level
        raise ValueError(f"unknown log level {value!r}")

    @classmethod
    def load(
        cls,
        options: OpQueOptions | Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> OpQueOptions:
        """Build options from a mapping and/or keywords.

        Raises:
            ConfigurationError: with ``{field: [messages]}`` for every
                missing or mistyped option.
        """
        if isinstance(options, OpQueOptions):
            if not overrides:
                return options
            data: dict[str, Any] = options.model_dump()
        elif options is None:
            data = {}
        elif isinstance(options, Mapping):
            data = dict(options)
        else:
            raise ConfigurationError(
                "OpQue requires an options mapping, "
                f"got {type(options).__name__}"
            )
        data.update(overrides)

        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            errors: dict[str, list[str]] = {}
            for error in exc.errors():
                loc = ".".join(str(p) for p in error.get("loc", ("__root__",)))
                msg = error.get("msg", "validation error")
                errors.setdefault(loc or "__root__", []).append(msg)
            raise ConfigurationError(errors) from exc
