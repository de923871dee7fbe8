"""Tests for the JSONL batch log."""

import json
import logging
from pathlib import Path

from lovell.logging import (
    BatchLogEntry,
    LogConfig,
    TaskLogEntry,
    batch_log,
    get_config,
    get_job_id,
    now_iso,
    set_config,
    set_job_id,
)
from lovell.logging.handlers import BATCH_LOGGER_NAME, create_batch_logger


def read_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines() if line]


def task_entry(success: bool, **kwargs) -> TaskLogEntry:
    return TaskLogEntry(
        timestamp=now_iso(),
        job_id="job-1",
        task_index=kwargs.pop("task_index", 0),
        command="make test",
        success=success,
        **kwargs,
    )


class TestLogConfig:
    """Tests for LogConfig."""

    def test_from_env(self, monkeypatch, tmp_path):
        """Environment variables override defaults."""
        monkeypatch.setenv("LOVELL_LOG_LEVEL", "warning")
        monkeypatch.setenv("LOVELL_LOG_DIR", str(tmp_path / "custom"))
        monkeypatch.setenv("LOVELL_LOG_MAX_SIZE_MB", "2")

        config = LogConfig.from_env()

        assert config.level == logging.WARNING
        assert config.log_dir == tmp_path / "custom"
        assert config.max_file_size_bytes == 2 * 1024 * 1024

    def test_bad_values_keep_defaults(self, monkeypatch):
        """Unknown levels and non-numeric sizes fall back to defaults."""
        monkeypatch.setenv("LOVELL_LOG_LEVEL", "chatty")
        monkeypatch.setenv("LOVELL_LOG_MAX_SIZE_MB", "huge")

        config = LogConfig.from_env()

        assert config.level == logging.INFO
        assert config.max_file_size_bytes == 10 * 1024 * 1024

    def test_batch_log_path(self, tmp_path):
        """Batch log lives in the log directory."""
        assert LogConfig(log_dir=tmp_path).batch_log_path == tmp_path / "batch.jsonl"


class TestEntries:
    """Tests for log entry dataclasses."""

    def test_entries_carry_their_kind(self):
        """Each entry type is tagged for readers of the mixed log."""
        assert task_entry(True).kind == "task"
        assert BatchLogEntry(timestamp="t", job_id="j").kind == "batch"
        assert "kind" not in task_entry(True).to_dict()

    def test_from_dict_ignores_unknown_keys(self):
        """Unknown keys are dropped when rebuilding an entry."""
        entry = BatchLogEntry.from_dict({
            "timestamp": "t",
            "job_id": "j",
            "total": 4,
            "kind": "batch",
            "unexpected": True,
        })
        assert entry.total == 4
        assert entry.config == {}


class TestBatchLogger:
    """Tests for the batch logger factory."""

    def test_entries_written_as_tagged_json(self, tmp_path):
        """Entries become one JSON object per line with kind and level."""
        logger = create_batch_logger(LogConfig(log_dir=tmp_path))

        logger.warning(task_entry(False, task_index=3, attempt=2, exit_code=1, error="boom"))
        logger.info(BatchLogEntry(timestamp=now_iso(), job_id="job-1", total=4))

        task, batch = read_lines(tmp_path / "batch.jsonl")
        assert task["kind"] == "task"
        assert task["level"] == "WARNING"
        assert task["task_index"] == 3
        assert task["attempt"] == 2
        assert task["success"] is False
        assert batch["kind"] == "batch"
        assert batch["total"] == 4

    def test_plain_messages_become_notes(self, tmp_path):
        """Anything that is not an entry is written as a note."""
        logger = create_batch_logger(LogConfig(log_dir=tmp_path))

        logger.error("disk %s", "full")

        [line] = read_lines(tmp_path / "batch.jsonl")
        assert line["kind"] == "note"
        assert line["message"] == "disk full"
        assert line["level"] == "ERROR"

    def test_rotation_settings_come_from_config(self, tmp_path):
        """The handler rotates with the configured size and backup count."""
        logger = create_batch_logger(
            LogConfig(log_dir=tmp_path, max_file_size_bytes=4096, backup_count=2)
        )

        [handler] = logger.handlers
        assert handler.maxBytes == 4096
        assert handler.backupCount == 2
        assert Path(handler.baseFilename) == tmp_path / "batch.jsonl"

    def test_reconfiguring_replaces_handler(self, tmp_path):
        """A logger rebuilt for a new directory has a single handler."""
        create_batch_logger(LogConfig(log_dir=tmp_path / "first"))
        logger = create_batch_logger(LogConfig(log_dir=tmp_path / "second"))

        assert len(logger.handlers) == 1
        assert not logger.propagate
        assert logger is logging.getLogger(BATCH_LOGGER_NAME)


class TestBatchLog:
    """Tests for the module-level batch_log."""

    def test_writes_to_configured_dir(self, tmp_path):
        """batch_log writes into the configured log directory."""
        set_config(LogConfig(log_dir=tmp_path / "batch-logs"))

        batch_log.batch(BatchLogEntry(timestamp=now_iso(), job_id="abc", total=2))

        [line] = read_lines(get_config().batch_log_path)
        assert line["job_id"] == "abc"
        assert line["level"] == "INFO"

    def test_level_follows_outcome(self):
        """Failed attempts and failed batches are logged as warnings."""
        batch_log.task(task_entry(True))
        batch_log.task(task_entry(False))
        batch_log.batch(BatchLogEntry(timestamp=now_iso(), job_id="j", total=1, failed=1))

        levels = [line["level"] for line in read_lines(get_config().batch_log_path)]
        assert levels == ["INFO", "WARNING", "WARNING"]

    def test_warning_level_keeps_failures_only(self, tmp_path):
        """With level WARNING, successful attempts are not written."""
        set_config(LogConfig(log_dir=tmp_path / "quiet", level=logging.WARNING))

        batch_log.task(task_entry(True, task_index=0))
        batch_log.task(task_entry(False, task_index=1))

        [line] = read_lines(get_config().batch_log_path)
        assert line["task_index"] == 1

    def test_job_id_context(self):
        """Job ID is stored for correlation."""
        set_job_id("job-42")
        assert get_job_id() == "job-42"
