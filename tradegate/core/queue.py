"""Serialized request queue spacing out exchange calls."""

import asyncio
import time
from typing import Callable, Optional
from loguru import logger


class Task:
    """Deferred zero-argument unit of work, runnable once."""

    def __init__(self, name: str, fn: Callable[[], None]):
        self.name = name
        self._fn = fn
        self.enqueued_at = time.monotonic()
        self.started_at: Optional[float] = None

    @property
    def executed(self) -> bool:
        return self.started_at is not None

    def run(self) -> None:
        if self.executed:
            raise RuntimeError(f"Task {self.name} already executed")
        self.started_at = time.monotonic()
        self._fn()

    def __repr__(self) -> str:
        return f"Task({self.name!r}, executed={self.executed})"


class RequestQueue:
    """FIFO queue with a single worker and a fixed gap between tasks.

    Tasks run synchronously from the worker's point of view: a task only
    starts its exchange call and returns. After each task the worker sleeps
    ``spacing_ms`` whatever the outcome, so at most one call starts per
    interval.
    """

    def __init__(self, spacing_ms: int = 1000):
        self.spacing = spacing_ms / 1000
        self._queue: "asyncio.Queue[Task]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self.executed_count = 0

    @property
    def pending(self) -> int:
        """Number of tasks waiting for the worker."""
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def enqueue(self, task: Task) -> None:
        """Append a task; never blocks."""
        self._queue.put_nowait(task)
        logger.debug(f"Queued {task.name} ({self.pending} pending)")
        if not self.running:
            self.start()

    def start(self) -> None:
        """Start the worker on the running event loop."""
        if self.running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._work())

    async def close(self) -> None:
        """Stop the worker; tasks still queued are not run."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def join(self) -> None:
        """Wait until every queued task has been started."""
        await self._queue.join()

    async def _work(self) -> None:
        while True:
            task = await self._queue.get()
            try:
                task.run()
                self.executed_count += 1
            except Exception as e:
                logger.error(f"Task {task.name} failed to start: {e}")
            finally:
                self._queue.task_done()
            await asyncio.sleep(self.spacing)
