"""
Shell command tasks for the batch processor.

A ShellCommand is a zero-argument callable, so it can be submitted to a
BatchProcessor directly. Each call runs the command once; a non-zero exit
status or a timeout raises, which makes the processor retry it.
"""

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass, field

from lovell.exceptions import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)

# Cap on captured output per stream
MAX_OUTPUT_CHARS = 64_000


@dataclass
class CommandResult:
    """Output of a successful command run."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    attempt: int = 1


@dataclass
class ShellCommand:
    """A shell command run as an asyncio subprocess."""

    command: str
    cwd: str | None = None
    timeout: float | None = None  # Seconds per attempt
    env: dict[str, str] | None = None
    attempts: int = field(default=0, init=False)

    async def __call__(self) -> CommandResult:
        """
        Run the command once.

        Returns:
            CommandResult for a zero exit status

        Raises:
            CommandError: If the command exits non-zero
            CommandTimeoutError: If the command runs past the timeout
        """
        self.attempts += 1
        attempt = self.attempts
        start = time.monotonic()
        logger.debug(f"Running '{self.command}' (attempt {attempt})")

        process = await asyncio.create_subprocess_shell(
            self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
            env=self.env,
            start_new_session=True,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _kill(process)
            raise CommandTimeoutError(
                f"Command timed out after {self.timeout}s: {self.command}",
                timeout_seconds=self.timeout or 0.0,
            )
        except asyncio.CancelledError:
            await _kill(process)
            raise

        out = stdout.decode(errors="replace")[:MAX_OUTPUT_CHARS]
        err = stderr.decode(errors="replace")[:MAX_OUTPUT_CHARS]
        exit_code = process.returncode if process.returncode is not None else -1

        if exit_code != 0:
            raise CommandError(
                f"Command exited with code {exit_code}: {self.command}",
                exit_code=exit_code,
                stderr=err.strip() or None,
            )

        return CommandResult(
            command=self.command,
            exit_code=exit_code,
            stdout=out,
            stderr=err,
            duration_ms=int((time.monotonic() - start) * 1000),
            attempt=attempt,
        )


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the command's whole process group so no child keeps the pipes open."""
    if process.returncode is not None:
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    await process.wait()
