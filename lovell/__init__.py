"""
Lovell - bounded, retrying batch task processing.

Runs asynchronous tasks with a concurrency cap and exponential-backoff
retries, resolving each submitter's future individually.
"""

__version__ = "0.1.0"

from lovell.batch import BatchOutcome, BatchProcessor
from lovell.config import ProcessorConfig
from lovell.exceptions import (
    CommandError,
    CommandTimeoutError,
    ConfigError,
    LovellError,
    TaskError,
)

__all__ = [
    "__version__",
    "BatchProcessor",
    "BatchOutcome",
    "ProcessorConfig",
    "LovellError",
    "ConfigError",
    "TaskError",
    "CommandError",
    "CommandTimeoutError",
]
