"""Tests for exception hierarchy."""

import pytest

from lovell.exceptions import (
    CommandError,
    CommandTimeoutError,
    ConfigError,
    LovellError,
    TaskError,
)


class TestLovellError:
    """Tests for base LovellError."""

    def test_basic_error(self):
        """Test basic error creation."""
        err = LovellError("Something went wrong")
        assert err.message == "Something went wrong"
        assert err.details == {}
        assert str(err) == "Something went wrong"

    def test_error_with_details(self):
        """Test error with details dict."""
        err = LovellError("Error occurred", {"code": 500})
        assert err.details == {"code": 500}
        assert "500" in str(err)


class TestCommandErrors:
    """Tests for shell command errors."""

    def test_command_error(self):
        """CommandError carries exit code and stderr."""
        err = CommandError("Command failed", exit_code=2, stderr="no such file")
        assert isinstance(err, TaskError)
        assert err.exit_code == 2
        assert err.stderr == "no such file"
        assert err.details["exit_code"] == 2

    def test_command_timeout_error(self):
        """CommandTimeoutError carries the timeout."""
        err = CommandTimeoutError("Timed out", timeout_seconds=1.5)
        assert isinstance(err, TaskError)
        assert err.timeout_seconds == 1.5
        assert err.details["timeout_seconds"] == 1.5


class TestExceptionHierarchy:
    """Tests for exception hierarchy relationships."""

    def test_all_inherit_from_lovell_error(self):
        """All custom exceptions inherit from LovellError."""
        for exc in [
            ConfigError("test"),
            TaskError("test"),
            CommandError("test", exit_code=1),
            CommandTimeoutError("test", timeout_seconds=1),
        ]:
            assert isinstance(exc, LovellError)

    def test_catchable_by_parent(self):
        """Child exceptions are catchable by parent type."""
        with pytest.raises(TaskError):
            raise CommandTimeoutError("test", timeout_seconds=1)
