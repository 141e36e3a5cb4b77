"""End-to-end tests for OpQue driven by a manual clock."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock

import pytest

from opque import (
    CREATE,
    DELETE,
    UPDATE,
    ManualTimer,
    MissingIdentifierError,
    OperationKind,
    OpQue,
    UnsupportedOperationError,
)

if TYPE_CHECKING:
    from .conftest import BatchRecorder


# ═══════════════════════════════════════════════════════════════════════
# Submission
# ═══════════════════════════════════════════════════════════════════════


class TestSubmit:
    def test_illegal_operation(self, queue: OpQue, timer: ManualTimer) -> None:
        queue.submit(CREATE, {"_id": 1})

        with pytest.raises(
            UnsupportedOperationError, match="operation you are trying to queue"
        ):
            queue.submit("ILLEGAL", {"_id": 200})

        assert set(queue.pending) == {1}

    def test_document_without_identifier(self, queue: OpQue) -> None:
        with pytest.raises(MissingIdentifierError, match="does not have the identifier"):
            queue.submit(CREATE, {})

        assert len(queue) == 0

    def test_kind_checked_before_document(self, queue: OpQue) -> None:
        with pytest.raises(UnsupportedOperationError):
            queue.submit("ILLEGAL", {})

    def test_create_then_delete_is_net_zero(self, queue: OpQue) -> None:
        doc = {"_id": "x", "name": "temp"}

        queue.submit(CREATE, doc)
        queue.submit(DELETE, doc)

        assert "x" not in queue.pending

    def test_create_then_update(self, queue: OpQue) -> None:
        queue.submit(CREATE, {"_id": "X", "a": 1, "b": 2})
        queue.submit(UPDATE, {"_id": "X", "b": 3})

        record = queue.pending["X"]
        assert record.kind is OperationKind.CREATE
        assert record.document == {"_id": "X", "a": 1, "b": 3}

    def test_update_then_delete(self, queue: OpQue) -> None:
        queue.submit(UPDATE, {"_id": 7, "a": 1})
        queue.submit(DELETE, {"_id": 7})

        record = queue.pending[7]
        assert record.kind is OperationKind.DELETE
        assert record.document == {"_id": 7}

    def test_convenience_methods_and_alias(self, queue: OpQue) -> None:
        queue.create({"_id": 1})
        queue.update({"_id": 2}, metadata="m")
        queue.delete({"_id": 3})
        queue.queue_operation("UPDATE", {"_id": 4})

        kinds = {key: op.kind for key, op in queue.pending.items()}
        assert kinds == {
            1: OperationKind.CREATE,
            2: OperationKind.UPDATE,
            3: OperationKind.DELETE,
            4: OperationKind.UPDATE,
        }
        assert queue.pending[2].metadata == "m"

    def test_anomaly_logged_on_instance_logger(
        self, queue: OpQue, caplog: pytest.LogCaptureFixture
    ) -> None:
        queue.submit(DELETE, {"_id": 1})

        with caplog.at_level(logging.WARNING, logger="opque.queue.default"):
            queue.submit(UPDATE, {"_id": 1, "a": 1})

        assert any(
            r.name == "opque.queue.default" and r.levelno == logging.WARNING
            for r in caplog.records
        )


# ═══════════════════════════════════════════════════════════════════════
# Timed flushing
# ═══════════════════════════════════════════════════════════════════════


class TestTimedFlush:
    def test_end_to_end_batch(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        queue.submit(CREATE, {"_id": "a"})
        queue.submit(UPDATE, {"_id": "b"})
        queue.submit(DELETE, {"_id": "c"})

        timer.advance(1.0)

        assert recorder.calls == 1
        batch = recorder.last
        assert set(batch) == {"a", "b", "c"}
        assert batch["a"].kind is OperationKind.CREATE
        assert batch["b"].kind is OperationKind.UPDATE
        assert batch["c"].kind is OperationKind.DELETE
        assert len(queue) == 0

    def test_submissions_restart_the_delay(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        queue.submit(CREATE, {"_id": 1})
        timer.advance(0.5)
        queue.submit(UPDATE, {"_id": 1, "n": 1})
        timer.advance(0.5)
        queue.submit(UPDATE, {"_id": 1, "n": 2})
        timer.advance(0.9)

        assert recorder.calls == 0

        timer.advance(0.5)

        assert recorder.calls == 1
        assert recorder.last[1].document == {"_id": 1, "n": 2}

    def test_idle_queue_never_calls_back(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        timer.advance(30.0)

        assert recorder.calls == 0
        assert timer.pending == 1

    def test_one_flush_per_quiet_window(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        queue.submit(CREATE, {"_id": 1})
        timer.advance(1.0)
        timer.advance(5.0)
        queue.submit(CREATE, {"_id": 2})
        timer.advance(1.0)

        assert recorder.calls == 2
        assert [set(b) for b in recorder.batches] == [{1}, {2}]

    def test_manual_flush(self, queue: OpQue, recorder: BatchRecorder) -> None:
        queue.submit(CREATE, {"_id": 1})

        assert queue.flush() == 1
        assert queue.flush() == 0
        assert recorder.calls == 1


# ═══════════════════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════════════════


class TestLifecycle:
    def test_construction_arms_timer(self, queue: OpQue, timer: ManualTimer) -> None:
        assert queue.running is True
        assert timer.pending == 1

    def test_stop_prevents_further_flushes(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        queue.stop()
        queue.submit(CREATE, {"_id": 1})
        timer.advance(10.0)

        assert recorder.calls == 0
        assert queue.running is False
        assert len(queue) == 1

    def test_context_manager_flushes_on_exit(
        self, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        with OpQue(
            flush_delay=5, flush_callback=recorder, identifier_field="id", timer=timer
        ) as q:
            q.submit(CREATE, {"id": 1})

        assert recorder.calls == 1
        assert q.running is False
        assert timer.pending == 0

    def test_start_after_stop(
        self, queue: OpQue, timer: ManualTimer, recorder: BatchRecorder
    ) -> None:
        queue.stop()
        queue.start()
        queue.submit(CREATE, {"_id": 1})
        timer.advance(1.0)

        assert recorder.calls == 1


# ═══════════════════════════════════════════════════════════════════════
# Async callbacks
# ═══════════════════════════════════════════════════════════════════════


class TestAsyncCallback:
    @pytest.mark.asyncio
    async def test_async_callback_scheduled_on_running_loop(self) -> None:
        timer = ManualTimer()
        callback = AsyncMock()
        queue = OpQue(
            flush_delay=1, flush_callback=callback, identifier_field="id", timer=timer
        )
        queue.submit(CREATE, {"id": 1})

        timer.advance(1.0)
        for _ in range(3):
            await asyncio.sleep(0)

        callback.assert_awaited_once()
        (batch,), _ = callback.call_args
        assert set(batch) == {1}
        queue.stop()

    @pytest.mark.asyncio
    async def test_async_callback_failure_is_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        callback = AsyncMock(side_effect=RuntimeError("write failed"))
        queue = OpQue(
            flush_delay=1,
            flush_callback=callback,
            identifier_field="id",
            timer=ManualTimer(),
        )
        queue.submit(CREATE, {"id": 1})

        with caplog.at_level(logging.ERROR, logger="opque.scheduler"):
            queue.flush()
            for _ in range(3):
                await asyncio.sleep(0)

        assert "Async flush callback failed" in caplog.text
        queue.stop()

    def test_async_callback_without_loop_is_not_awaited(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        seen: list[Any] = []

        async def callback(batch: dict[Any, Any]) -> None:
            seen.append(batch)

        queue = OpQue(
            flush_delay=1,
            flush_callback=callback,
            identifier_field="id",
            timer=ManualTimer(),
        )
        queue.submit(CREATE, {"id": 1})

        with caplog.at_level(logging.ERROR, logger="opque.queue.default"):
            assert queue.flush() == 1

        assert seen == []
        assert "outside a running event loop" in caplog.text


# ═══════════════════════════════════════════════════════════════════════
# Per-instance logging
# ═══════════════════════════════════════════════════════════════════════


class TestInstanceLogging:
    def test_each_queue_keeps_its_own_level(self) -> None:
        first = OpQue(
            flush_delay=1,
            flush_callback=lambda batch: None,
            identifier_field="id",
            log_level="debug",
            timer=ManualTimer(),
        )
        second = OpQue(
            flush_delay=1,
            flush_callback=lambda batch: None,
            identifier_field="id",
            log_level="error",
            timer=ManualTimer(),
        )

        assert first.log.level == logging.DEBUG
        assert second.log.level == logging.ERROR
        assert first.log is not second.log
        assert first.log.name == second.log.name == "opque.queue.default"

    def test_records_propagate_through_named_logger(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        quiet = OpQue(
            flush_delay=1,
            flush_callback=lambda batch: None,
            identifier_field="id",
            timer=ManualTimer(),
        )
        chatty = OpQue(
            flush_delay=1,
            flush_callback=lambda batch: None,
            identifier_field="id",
            log_level="warning",
            timer=ManualTimer(),
        )

        with caplog.at_level(logging.WARNING):
            quiet.submit(DELETE, {"id": 1})
            quiet.submit(UPDATE, {"id": 1})
            chatty.submit(DELETE, {"id": 2})
            chatty.submit(UPDATE, {"id": 2})

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert warnings[0].name == "opque.queue.default"
        assert warnings[0].args == (2,)
