"""
Lovell - Exception Hierarchy

All Lovell-specific exceptions inherit from LovellError.
Errors raised by user tasks are never wrapped: they reach the task's
future unchanged.
"""

from typing import Any


class LovellError(Exception):
    """Base exception for all Lovell-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(LovellError):
    """Raised when configuration is invalid or missing."""

    pass


# Task Errors
class TaskError(LovellError):
    """Base exception for errors raised by Lovell's own task types."""

    pass


class CommandError(TaskError):
    """Raised when a shell command exits with a non-zero status."""

    def __init__(self, message: str, exit_code: int, stderr: str | None = None):
        super().__init__(message, {"exit_code": exit_code, "stderr": stderr})
        self.exit_code = exit_code
        self.stderr = stderr


class CommandTimeoutError(TaskError):
    """Raised when a shell command runs past its timeout and is killed."""

    def __init__(self, message: str, timeout_seconds: float):
        super().__init__(message, {"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds
