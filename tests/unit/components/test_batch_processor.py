"""Tests for batched concurrency helpers."""

import asyncio
import time

import pytest

from docqa_retrieval.components.batch_processor import BatchProcessor
from docqa_retrieval.core.errors import OperationTimeoutError


class TestParallelProcess:
    """Tests for batch execution."""

    @pytest.mark.asyncio
    async def test_preserves_input_order(self):
        """Test results line up with inputs despite varying durations."""
        async def op(n):
            await asyncio.sleep(0.01 * (5 - n))
            return n * 2

        results = await BatchProcessor(batch_size=3).parallel_process(list(range(5)), op)
        assert results == [0, 2, 4, 6, 8]

    @pytest.mark.asyncio
    async def test_batches_do_not_overlap(self):
        """Test a batch starts only after the previous one finished."""
        in_flight = 0
        peak = 0

        async def op(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return n

        await BatchProcessor(batch_size=2).parallel_process(list(range(7)), op)
        assert peak == 2

    @pytest.mark.asyncio
    async def test_delay_only_between_batches(self):
        """Test the delay is applied between batches, not after the last."""
        async def op(n):
            return n

        start = time.perf_counter()
        await BatchProcessor().parallel_process([1, 2, 3], op, batch_size=1, delay_between_batches=0.05)
        elapsed = time.perf_counter() - start

        assert 0.1 <= elapsed < 0.5

    @pytest.mark.asyncio
    async def test_empty_input(self):
        """Test nothing to do returns an empty list."""
        async def op(n):
            return n

        assert await BatchProcessor().parallel_process([], op) == []

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        """Test an operation error surfaces to the caller."""
        async def op(n):
            if n == 1:
                raise ValueError("bad item")
            return n

        with pytest.raises(ValueError):
            await BatchProcessor().parallel_process([0, 1, 2], op)

    def test_invalid_batch_size(self):
        """Test batch size must be positive."""
        with pytest.raises(ValueError):
            BatchProcessor(batch_size=0)

    @pytest.mark.asyncio
    async def test_explicit_zero_batch_size_rejected(self):
        """Test a per-call batch size of zero is not replaced by the default."""
        async def op(n):
            return n

        with pytest.raises(ValueError):
            await BatchProcessor(batch_size=5).parallel_process([1, 2], op, batch_size=0)


class TestWithTimeout:
    """Tests for deadlines."""

    @pytest.mark.asyncio
    async def test_completes_in_time(self):
        """Test a fast operation returns its result."""
        async def fast():
            return "done"

        assert await BatchProcessor().with_timeout(fast(), timeout_ms=500) == "done"

    @pytest.mark.asyncio
    async def test_times_out(self):
        """Test a slow operation raises OperationTimeoutError."""
        with pytest.raises(OperationTimeoutError) as exc_info:
            await BatchProcessor().with_timeout(asyncio.sleep(1), timeout_ms=20, operation_name="slow")

        assert exc_info.value.details == {"timeout_ms": 20, "operation": "slow"}
        assert str(exc_info.value) == "Operation timeout after 20ms"

    @pytest.mark.asyncio
    async def test_configured_default_deadline(self):
        """Test the processor's deadline applies when none is passed."""
        processor = BatchProcessor(timeout_ms=20)
        with pytest.raises(OperationTimeoutError) as exc_info:
            await processor.with_timeout(asyncio.sleep(1))

        assert exc_info.value.details["timeout_ms"] == 20
        await processor.drain()

    @pytest.mark.asyncio
    async def test_operation_not_cancelled(self):
        """Test the abandoned operation keeps running after the timeout."""
        finished = asyncio.Event()

        async def slow():
            await asyncio.sleep(0.05)
            finished.set()

        processor = BatchProcessor()
        with pytest.raises(OperationTimeoutError):
            await processor.with_timeout(slow(), timeout_ms=10)

        await asyncio.wait_for(finished.wait(), timeout=1)
        assert finished.is_set()


class TestProcessInBackground:
    """Tests for fire-and-forget tasks."""

    @pytest.mark.asyncio
    async def test_on_complete(self):
        """Test the completion callback receives the result."""
        received = []

        async def work():
            return 7

        processor = BatchProcessor()
        processor.process_in_background(work(), on_complete=received.append)
        await processor.drain()
        await asyncio.sleep(0)

        assert received == [7]

    @pytest.mark.asyncio
    async def test_on_error(self):
        """Test failures go to the error callback instead of raising."""
        errors = []

        async def work():
            raise RuntimeError("background failure")

        processor = BatchProcessor()
        processor.process_in_background(work(), on_error=errors.append)
        await processor.drain()
        await asyncio.sleep(0)

        assert len(errors) == 1
        assert str(errors[0]) == "background failure"

    @pytest.mark.asyncio
    async def test_task_released_when_done(self):
        """Test finished tasks are no longer tracked."""
        async def work():
            return None

        processor = BatchProcessor()
        processor.process_in_background(work())
        assert processor.pending_count == 1
        await processor.drain()
        await asyncio.sleep(0)
        assert processor.pending_count == 0
