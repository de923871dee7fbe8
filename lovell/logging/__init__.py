"""
Lovell Logging System.

Structured JSONL log of batch runs in ~/.lovell/logs/batch.jsonl
(override with LOVELL_LOG_DIR):
- one "task" line per command attempt (INFO, or WARNING when it failed)
- one "batch" line per finished batch (WARNING if anything failed)
- "note" lines for anything that does not fit either, such as an
  interrupted run

Usage:
    from lovell.logging import batch_log, TaskLogEntry, get_job_id, now_iso

    batch_log.task(TaskLogEntry(
        timestamp=now_iso(),
        job_id=get_job_id(),
        task_index=0,
        ...
    ))
"""

import logging
import threading

from .config import LogConfig
from .entries import BatchLogEntry, TaskLogEntry, now_iso
from .handlers import create_batch_logger

# Thread-local storage for job context
_context = threading.local()


def set_job_id(job_id: str) -> None:
    """Set the current job ID for log correlation."""
    _context.job_id = job_id


def get_job_id() -> str:
    """Get the current job ID, or 'unknown' if not set."""
    return getattr(_context, "job_id", "unknown")


_config: LogConfig | None = None
_logger: logging.Logger | None = None
_lock = threading.Lock()


def get_config() -> LogConfig:
    """Get the active log config, reading the environment on first use."""
    global _config
    with _lock:
        if _config is None:
            _config = LogConfig.from_env()
        return _config


def set_config(config: LogConfig) -> None:
    """Replace the log config; the batch logger is rebuilt on next write."""
    global _config, _logger
    with _lock:
        _config = config
        _logger = None


def _get_logger() -> logging.Logger:
    # No log file is created until the first entry is written
    global _logger
    config = get_config()
    with _lock:
        if _logger is None:
            _logger = create_batch_logger(config)
        return _logger


class BatchLog:
    """Writes batch log entries at a level derived from their outcome."""

    def task(self, entry: TaskLogEntry) -> None:
        _get_logger().log(logging.INFO if entry.success else logging.WARNING, entry)

    def batch(self, entry: BatchLogEntry) -> None:
        _get_logger().log(logging.WARNING if entry.failed else logging.INFO, entry)

    def note(self, message: str, level: int = logging.WARNING) -> None:
        _get_logger().log(level, message)


batch_log = BatchLog()


__all__ = [
    "batch_log",
    "BatchLog",
    "TaskLogEntry",
    "BatchLogEntry",
    "now_iso",
    "get_job_id",
    "set_job_id",
    "LogConfig",
    "get_config",
    "set_config",
]
