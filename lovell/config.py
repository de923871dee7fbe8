"""
Lovell - Configuration Management

Processor settings come from ~/.config/lovell/config.json and environment
variables. Only the CLI loads them; BatchProcessor takes an explicit
ProcessorConfig.
"""

import json
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lovell.exceptions import ConfigError


# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "lovell"
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_BASE_MS = 1000.0


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class ProcessorConfig:
    """Immutable settings for a BatchProcessor."""

    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    max_retries: int = DEFAULT_MAX_RETRIES  # Retries after the first failure
    retry_delay_base_ms: float = DEFAULT_RETRY_DELAY_BASE_MS

    def __post_init__(self) -> None:
        if not _is_int(self.max_concurrent) or self.max_concurrent < 1:
            raise ConfigError(
                "max_concurrent must be a positive integer",
                {"max_concurrent": self.max_concurrent},
            )
        if not _is_int(self.max_retries) or self.max_retries < 0:
            raise ConfigError(
                "max_retries must be a non-negative integer",
                {"max_retries": self.max_retries},
            )
        delay = self.retry_delay_base_ms
        if not _is_number(delay) or not math.isfinite(delay) or delay < 0:
            raise ConfigError(
                "retry_delay_base_ms must be a finite non-negative number",
                {"retry_delay_base_ms": self.retry_delay_base_ms},
            )

    def backoff_delay(self, attempts: int) -> float:
        """
        Delay in seconds before retrying an entry.

        Args:
            attempts: Attempts already retried (0 for the first retry)

        Returns:
            retry_delay_base_ms * 2**attempts, converted to seconds
        """
        return self.retry_delay_base_ms * (2**attempts) / 1000

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "max_concurrent": self.max_concurrent,
            "max_retries": self.max_retries,
            "retry_delay_base_ms": self.retry_delay_base_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProcessorConfig":
        """Create ProcessorConfig from dictionary."""
        return cls(
            max_concurrent=data.get("max_concurrent", DEFAULT_MAX_CONCURRENT),
            max_retries=data.get("max_retries", DEFAULT_MAX_RETRIES),
            retry_delay_base_ms=data.get("retry_delay_base_ms", DEFAULT_RETRY_DELAY_BASE_MS),
        )


@dataclass
class LovellConfig:
    """Main configuration container for Lovell."""

    processor: ProcessorConfig = field(default_factory=ProcessorConfig)
    command_timeout: float | None = None  # Seconds; None disables it

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "processor": self.processor.to_dict(),
            "command_timeout": self.command_timeout,
        }


def ensure_config_dir(path: Path | None = None) -> None:
    """Ensure configuration directory exists."""
    (path or CONFIG_FILE).parent.mkdir(parents=True, exist_ok=True)


def _env_number(name: str, cast: type) -> Any:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(
            f"Invalid value for {name}",
            {"value": raw, "expected": cast.__name__},
        )


def check_command_timeout(timeout: Any) -> float | None:
    """Return the timeout unchanged if it is None or a finite positive number."""
    if timeout is not None and (
        not _is_number(timeout) or not math.isfinite(timeout) or timeout <= 0
    ):
        raise ConfigError(
            "command_timeout must be a finite positive number",
            {"command_timeout": timeout},
        )
    return timeout


def load_config(path: Path | None = None) -> LovellConfig:
    """
    Load configuration from file and environment.

    Environment variables override values from the file.

    Args:
        path: JSON config file (default CONFIG_FILE); missing files are ignored

    Returns:
        LovellConfig with all settings loaded

    Raises:
        ConfigError: If configuration is invalid
    """
    path = path or CONFIG_FILE
    processor_data: dict[str, Any] = {}
    command_timeout: float | None = None

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in {path}",
                {"error": str(e)},
            )

        if not isinstance(data, dict) or not isinstance(data.get("processor", {}), dict):
            raise ConfigError(
                f"Unexpected structure in {path}",
                {"expected": "object with optional 'processor' object"},
            )
        processor_data.update(data.get("processor", {}))
        command_timeout = data.get("command_timeout")

    if (max_concurrent := _env_number("LOVELL_MAX_CONCURRENT", int)) is not None:
        processor_data["max_concurrent"] = max_concurrent
    if (max_retries := _env_number("LOVELL_MAX_RETRIES", int)) is not None:
        processor_data["max_retries"] = max_retries
    if (retry_delay := _env_number("LOVELL_RETRY_DELAY_MS", float)) is not None:
        processor_data["retry_delay_base_ms"] = retry_delay
    if (timeout := _env_number("LOVELL_COMMAND_TIMEOUT", float)) is not None:
        command_timeout = timeout

    return LovellConfig(
        processor=ProcessorConfig.from_dict(processor_data),
        command_timeout=check_command_timeout(command_timeout),
    )


def save_config(config: LovellConfig, path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: LovellConfig to save
        path: Destination JSON file (default CONFIG_FILE)
    """
    path = path or CONFIG_FILE
    ensure_config_dir(path)

    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
