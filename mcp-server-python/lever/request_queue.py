"""
FIFO request queue with a single consumer task.

All outbound work for one client instance is submitted here. A single worker
task runs the submitted operations one after another in submission order, so the
token bucket is only ever consulted by one logical request at a time and retries
of one request never interleave with another's.

Known latency cost: a slow or retry-heavy operation at the head of the queue
delays everything submitted after it. Callers that need parallelism across
different credentials should use separate client instances.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


class RequestQueue:
    """
    Serializes asynchronous operations through one worker task.

    The worker and its queue are created lazily on first submit, inside the
    running event loop. An operation whose caller stopped waiting before it
    reached the head of the queue is skipped; an operation that has started
    always runs to completion.
    """

    def __init__(self, name: str = "lever"):
        self.name = name
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.started_count = 0
        self.skipped_count = 0

    @property
    def pending(self) -> int:
        """Number of operations waiting behind the one currently running."""
        return self._queue.qsize() if self._queue is not None else 0

    def _ensure_worker(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            # asyncio queues are bound to the loop that first uses them.
            self._queue = asyncio.Queue()
            self._loop = loop
            self._worker = None
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._run(self._queue))
        return self._queue

    async def submit(self, operation: Operation) -> Any:
        """
        Enqueue an operation and wait for its outcome.

        Args:
            operation: Zero-argument coroutine function to run when its turn comes.

        Returns:
            Whatever the operation returns.

        Raises:
            Whatever the operation raises.
        """
        queue = self._ensure_worker()
        future = asyncio.get_running_loop().create_future()
        await queue.put((operation, future))
        return await future

    async def _run(self, queue: asyncio.Queue) -> None:
        while True:
            operation, future = await queue.get()
            try:
                await self._run_one(operation, future)
            finally:
                queue.task_done()

    async def _run_one(self, operation: Operation, future: asyncio.Future) -> None:
        if future.done():
            # Caller was cancelled before this operation started.
            self.skipped_count += 1
            logger.debug(f"[{self.name}] skipping abandoned request")
            return

        self.started_count += 1
        try:
            result = await operation()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not future.done():
                future.set_exception(e)
            return

        if not future.done():
            future.set_result(result)

    async def join(self) -> None:
        """Wait until every submitted operation has settled."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Stop the worker task. Pending operations are cancelled."""
        worker, self._worker = self._worker, None
        queue, self._queue = self._queue, None
        self._loop = None

        if queue is not None:
            while not queue.empty():
                _, future = queue.get_nowait()
                if not future.done():
                    future.cancel()

        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

