"""Shared fixtures: keep config and log files inside the test's tmp_path."""

import pytest

from lovell.logging import LogConfig, set_config

LOVELL_ENV_VARS = (
    "LOVELL_MAX_CONCURRENT",
    "LOVELL_MAX_RETRIES",
    "LOVELL_RETRY_DELAY_MS",
    "LOVELL_COMMAND_TIMEOUT",
    "LOVELL_LOG_LEVEL",
    "LOVELL_LOG_DIR",
    "LOVELL_LOG_MAX_SIZE_MB",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point config and logs at tmp_path and clear LOVELL_* variables."""
    for name in LOVELL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("lovell.config.CONFIG_FILE", tmp_path / "config" / "config.json")
    set_config(LogConfig(log_dir=tmp_path / "logs"))
    yield tmp_path
