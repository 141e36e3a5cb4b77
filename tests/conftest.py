"""Shared fixtures: a manual clock and a batch-recording flush callback."""

from __future__ import annotations

from typing import Any

import pytest

from opque import ManualTimer, OpQue


class BatchRecorder:
    """Flush callback that keeps every batch it receives."""

    def __init__(self) -> None:
        self.batches: list[dict[Any, Any]] = []

    def __call__(self, batch: dict[Any, Any]) -> None:
        self.batches.append(batch)

    @property
    def calls(self) -> int:
        return len(self.batches)

    @property
    def last(self) -> dict[Any, Any]:
        return self.batches[-1]


@pytest.fixture
def timer() -> ManualTimer:
    return ManualTimer()


@pytest.fixture
def recorder() -> BatchRecorder:
    return BatchRecorder()


@pytest.fixture
def queue(timer: ManualTimer, recorder: BatchRecorder) -> OpQue:
    return OpQue(
        flush_delay=1.0,
        flush_callback=recorder,
        identifier_field="_id",
        log_level="debug",
        timer=timer,
    )
