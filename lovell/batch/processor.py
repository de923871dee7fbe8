"""
Batch Processor - bounded-concurrency task queue with retries

Runs at most max_concurrent tasks at once on the current event loop.
Failed tasks are re-queued at the tail after an exponential backoff
delay until max_retries is exhausted, then the task's own future is
rejected with the original error.
"""

import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from lovell.batch.outcome import BatchOutcome
from lovell.config import ProcessorConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[T]]
RetryHook = Callable[[int, BaseException, float], None]


@dataclass
class QueueEntry(Generic[T]):
    """A submitted task plus the future its caller is waiting on."""

    task: Task[T]
    future: asyncio.Future[T]
    attempts: int = 0
    entry_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    def resolve(self, result: T) -> None:
        """Complete the caller's future with a result."""
        if not self.future.done():
            self.future.set_result(result)

    def reject(self, error: BaseException) -> None:
        """Complete the caller's future with an error."""
        if self.future.done():
            return
        if isinstance(error, asyncio.CancelledError):
            self.future.cancel()
        else:
            self.future.set_exception(error)


class BatchProcessor(Generic[T]):
    """
    Bounded, retrying task queue.

    Bound to the event loop it is first used on. Not thread-safe: all
    state is mutated from event loop callbacks only, so submissions from
    other threads must go through loop.call_soon_threadsafe().
    """

    def __init__(
        self,
        config: ProcessorConfig | None = None,
        on_retry: RetryHook | None = None,
    ):
        """
        Initialize the processor.

        Args:
            config: Concurrency and retry settings (defaults if omitted)
            on_retry: Called as on_retry(retry_number, error, delay_seconds)
                each time a failed task is scheduled for another attempt
        """
        self._config = config or ProcessorConfig()
        self._on_retry = on_retry

        self._pending: deque[QueueEntry[T]] = deque()
        self._running = 0
        self._retrying = 0
        self._workers: set[asyncio.Task[None]] = set()
        self._idle: asyncio.Event | None = None
        self._shutting_down = False

    @property
    def config(self) -> ProcessorConfig:
        """Get the processor configuration."""
        return self._config

    @property
    def running_count(self) -> int:
        """Number of currently executing tasks."""
        return self._running

    @property
    def pending_count(self) -> int:
        """Number of entries waiting for a free slot."""
        return len(self._pending)

    @property
    def retrying_count(self) -> int:
        """Number of failed entries waiting out their backoff delay."""
        return self._retrying

    @property
    def is_idle(self) -> bool:
        """True when nothing is pending, running or waiting to retry."""
        return not self._pending and self._running == 0 and self._retrying == 0

    def submit(self, task: Task[T]) -> asyncio.Future[T]:
        """
        Queue a task for execution.

        Must be called with a running event loop.

        Args:
            task: Zero-argument callable returning an awaitable

        Returns:
            Future resolved with the task's result, or rejected with its
            last error once retries are exhausted. Cancelled instead if the
            event loop has cancelled the processor's workers.
        """
        loop = asyncio.get_running_loop()
        entry: QueueEntry[T] = QueueEntry(task=task, future=loop.create_future())
        if self._shutting_down:
            entry.future.cancel()
            return entry.future
        self._pending.append(entry)
        logger.debug(f"Queued entry {entry.entry_id} ({len(self._pending)} pending)")
        self._process_next()
        return entry.future

    def submit_many(self, tasks: Iterable[Task[T]]) -> list[asyncio.Future[T]]:
        """Submit tasks in order and return their individual futures."""
        return [self.submit(task) for task in tasks]

    def submit_all(self, tasks: Iterable[Task[T]]) -> asyncio.Future[list[T]]:
        """
        Submit tasks and wait for all of them, failing on the first error.

        The aggregate fails as soon as any task's future is rejected.
        Remaining tasks are not cancelled; they keep running and their
        results are discarded. Cancelling the aggregate cancels the
        individual futures but not the tasks behind them. A failure on an
        aggregate nobody awaits is not reported as unretrieved.

        Returns:
            Future resolved with results in submission order
        """
        futures = self.submit_many(tasks)
        if not futures:
            done: asyncio.Future[list[T]] = asyncio.get_running_loop().create_future()
            done.set_result([])
            return done
        aggregate = asyncio.gather(*futures)
        aggregate.add_done_callback(_retrieve_exception)
        return aggregate

    async def submit_settled(self, tasks: Iterable[Task[T]]) -> BatchOutcome[T]:
        """
        Submit tasks and wait until every one of them has finished.

        Unlike submit_all(), a failure does not end the wait: successful
        results and errors are both collected.

        Returns:
            BatchOutcome with per-index results and errors
        """
        futures = self.submit_many(tasks)
        settled = await asyncio.gather(*futures, return_exceptions=True)

        outcome: BatchOutcome[T] = BatchOutcome()
        for index, value in enumerate(settled):
            if isinstance(value, BaseException):
                outcome.results.append(None)
                outcome.errors.append((index, value))
            else:
                outcome.results.append(value)
        return outcome

    async def join(self) -> None:
        """Wait until the queue has drained completely."""
        if self.is_idle:
            return
        if self._idle is None:
            self._idle = asyncio.Event()
        self._idle.clear()
        await self._idle.wait()

    def _process_next(self) -> None:
        """Promote pending entries to running while there is capacity."""
        if self._shutting_down:
            self._check_idle()
            return
        while self._running < self._config.max_concurrent and self._pending:
            entry = self._pending.popleft()
            self._running += 1
            logger.debug(
                f"Starting entry {entry.entry_id} (attempt {entry.attempts + 1}, "
                f"{self._running}/{self._config.max_concurrent} running)"
            )
            worker = asyncio.ensure_future(self._execute(entry))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)

        self._check_idle()

    async def _execute(self, entry: QueueEntry[T]) -> None:
        """Run one attempt of an entry and route its outcome."""
        try:
            try:
                result = await entry.task()
            except asyncio.CancelledError as e:
                worker = asyncio.current_task()
                if worker is not None and worker.cancelling():
                    self._shut_down(entry)
                    raise
                # Raised by the task itself, not by cancelling this worker
                self._handle_failure(entry, e)
            except Exception as e:
                self._handle_failure(entry, e)
            else:
                entry.resolve(result)
        finally:
            self._running -= 1
            self._process_next()

    def _shut_down(self, entry: QueueEntry[T]) -> None:
        """Cancel every outstanding future once a worker is cancelled."""
        self._shutting_down = True
        entry.future.cancel()
        while self._pending:
            self._pending.popleft().future.cancel()
        logger.debug("Worker cancelled; processor stopped accepting work")

    def _handle_failure(self, entry: QueueEntry[T], error: BaseException) -> None:
        """Schedule a retry, or reject the entry once retries run out."""
        if entry.attempts >= self._config.max_retries:
            logger.warning(
                f"Entry {entry.entry_id} failed after {entry.attempts + 1} attempt(s): {error}"
            )
            entry.reject(error)
            return

        delay = self._config.backoff_delay(entry.attempts)
        logger.info(
            f"Entry {entry.entry_id} failed ({error}); retry "
            f"{entry.attempts + 1}/{self._config.max_retries} in {delay:.3f}s"
        )
        self._notify_retry(entry.attempts + 1, error, delay)

        self._retrying += 1
        asyncio.get_running_loop().call_later(delay, self._requeue, entry)

    def _requeue(self, entry: QueueEntry[T]) -> None:
        """Put a retried entry back at the tail of the queue."""
        self._retrying -= 1
        if self._shutting_down:
            entry.future.cancel()
            self._check_idle()
            return
        entry.attempts += 1
        self._pending.append(entry)
        self._process_next()

    def _notify_retry(self, retry_number: int, error: BaseException, delay: float) -> None:
        if self._on_retry is None:
            return
        try:
            self._on_retry(retry_number, error, delay)
        except Exception as e:
            logger.exception(f"on_retry hook raised: {e}")

    def _check_idle(self) -> None:
        if self._idle is not None and self.is_idle:
            self._idle.set()

    def __repr__(self) -> str:
        return (
            f"BatchProcessor(running={self._running}, pending={len(self._pending)}, "
            f"retrying={self._retrying}, config={self._config!r})"
        )


def _retrieve_exception(future: asyncio.Future) -> None:
    if not future.cancelled():
        future.exception()
