"""
Batch log handler.

Task and batch entries are passed to the logger as the record message
itself, e.g. logger.warning(task_entry), and rendered here as one JSON
object per line tagged with its kind and level.
"""

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

from .config import LogConfig
from .entries import BatchLogEntry, TaskLogEntry

BATCH_LOGGER_NAME = "lovell.batch_log"


class EntryFormatter(logging.Formatter):
    """Render TaskLogEntry / BatchLogEntry records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = record.msg
        if isinstance(entry, (TaskLogEntry, BatchLogEntry)):
            data = {"kind": entry.kind, **entry.to_dict()}
        else:
            # Free-form notes, e.g. a batch interrupted before its summary
            data = {
                "kind": "note",
                "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                "message": record.getMessage(),
            }
        data["level"] = record.levelname
        return json.dumps(data, default=str)


class BatchLogHandler(RotatingFileHandler):
    """RotatingFileHandler writing the batch log described by a LogConfig."""

    def __init__(self, config: LogConfig):
        config.log_dir.mkdir(parents=True, exist_ok=True)
        super().__init__(
            config.batch_log_path,
            maxBytes=config.max_file_size_bytes,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        self.setFormatter(EntryFormatter())


def create_batch_logger(config: LogConfig) -> logging.Logger:
    """
    (Re)configure the batch logger for the given settings.

    Any handler from an earlier configuration is closed first, so the
    logger always writes to exactly one file.
    """
    logger = logging.getLogger(BATCH_LOGGER_NAME)
    logger.setLevel(config.level)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.addHandler(BatchLogHandler(config))
    logger.propagate = False
    return logger
