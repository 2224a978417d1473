"""Batched concurrency, deadlines and fire-and-forget tasks."""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Set, Sequence, TypeVar

from docqa_retrieval.core.errors import OperationTimeoutError
from docqa_retrieval.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BatchProcessor:
    """Runs async operations in bounded batches.

    Background tasks started through ``process_in_background`` are held
    until they finish so they are not garbage collected mid-flight.
    """

    def __init__(
        self,
        batch_size: int = 10,
        delay_between_batches: float = 0.0,
        timeout_ms: float = 30000
    ):
        """Initialize batch processor.

        Args:
            batch_size: Default number of operations run concurrently.
            delay_between_batches: Default pause in seconds between batches.
            timeout_ms: Default deadline for ``with_timeout``.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.batch_size = batch_size
        self.delay_between_batches = delay_between_batches
        self.timeout_ms = timeout_ms
        self._background_tasks: Set[asyncio.Task] = set()

    async def parallel_process(
        self,
        items: Sequence[T],
        operation: Callable[[T], Awaitable[R]],
        batch_size: Optional[int] = None,
        delay_between_batches: Optional[float] = None
    ) -> List[R]:
        """Apply ``operation`` to every item, one batch at a time.

        All operations in a batch run concurrently and the whole batch is
        awaited before the next starts. The delay is applied between batches,
        never after the last one. Results are in input order. The first
        failing operation's exception propagates.
        """
        batch_size = self.batch_size if batch_size is None else batch_size
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        delay = self.delay_between_batches if delay_between_batches is None else delay_between_batches

        results: List[R] = []
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            batch_results = await asyncio.gather(*(operation(item) for item in batch))
            results.extend(batch_results)

            if delay > 0 and start + batch_size < len(items):
                await asyncio.sleep(delay)

        return results

    async def with_timeout(
        self,
        operation: Awaitable[R],
        timeout_ms: Optional[float] = None,
        operation_name: Optional[str] = None
    ) -> R:
        """Await ``operation`` for at most ``timeout_ms`` milliseconds.

        ``timeout_ms`` defaults to the processor's configured deadline.

        On expiry the operation is abandoned, not cancelled; it may still
        complete later.

        Raises:
            OperationTimeoutError: If the deadline passes first.
        """
        if timeout_ms is None:
            timeout_ms = self.timeout_ms
        task = asyncio.ensure_future(operation)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning(f"Operation {operation_name or 'unnamed'} timed out after {timeout_ms}ms")
            self._track(task)
            raise OperationTimeoutError(timeout_ms, operation=operation_name)

    def process_in_background(
        self,
        operation: Awaitable[Any],
        on_complete: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ) -> asyncio.Task:
        """Schedule ``operation`` without awaiting it.

        Failures are logged and handed to ``on_error``; they never propagate.
        """
        task = asyncio.ensure_future(operation)

        def _done(finished: asyncio.Task) -> None:
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.error(f"Background task failed: {error}")
                if on_error is not None:
                    on_error(error)
            elif on_complete is not None:
                on_complete(finished.result())

        task.add_done_callback(_done)
        self._track(task)
        return task

    def _track(self, task: asyncio.Task) -> None:
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    @property
    def pending_count(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for every tracked background task to finish."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
