"""
Batch log settings.

A single rotating JSONL file holds every task attempt and batch summary.
Environment overrides: LOVELL_LOG_DIR, LOVELL_LOG_LEVEL and
LOVELL_LOG_MAX_SIZE_MB.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

BATCH_LOG_NAME = "batch.jsonl"


@dataclass
class LogConfig:
    """Where the batch log lives and when it rotates."""

    log_dir: Path = field(default_factory=lambda: Path.home() / ".lovell" / "logs")
    max_file_size_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    # INFO records every attempt; WARNING keeps failed attempts only
    level: int = logging.INFO

    @classmethod
    def from_env(cls) -> "LogConfig":
        config = cls()

        if log_dir := os.environ.get("LOVELL_LOG_DIR"):
            config.log_dir = Path(log_dir)

        if name := os.environ.get("LOVELL_LOG_LEVEL"):
            level = logging.getLevelName(name.upper())
            if isinstance(level, int):
                config.level = level

        if size_mb := os.environ.get("LOVELL_LOG_MAX_SIZE_MB"):
            if size_mb.isdigit() and int(size_mb) > 0:
                config.max_file_size_bytes = int(size_mb) * 1024 * 1024

        return config

    @property
    def batch_log_path(self) -> Path:
        return self.log_dir / BATCH_LOG_NAME
