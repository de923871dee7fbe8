"""Bounded-concurrency batch processing with retries."""

from lovell.batch.outcome import BatchOutcome
from lovell.batch.processor import BatchProcessor, QueueEntry, RetryHook, Task

__all__ = [
    "BatchProcessor",
    "BatchOutcome",
    "QueueEntry",
    "RetryHook",
    "Task",
]
