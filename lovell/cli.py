"""
Lovell CLI - Typer Commands

Runs shell commands through a BatchProcessor:

    lovell run "make lint" "make test" --max-concurrent 2 --max-retries 1
    lovell run --file jobs.txt --fail-fast
    lovell config
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from lovell.batch import BatchProcessor
from lovell.commands import CommandResult, ShellCommand
from lovell.config import CONFIG_FILE, ProcessorConfig, check_command_timeout, load_config
from lovell.exceptions import ConfigError
from lovell.logging import (
    BatchLogEntry,
    TaskLogEntry,
    batch_log,
    get_config as get_log_config,
    get_job_id,
    now_iso,
    set_job_id,
)

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(
    name="lovell",
    help="Run shell commands in a bounded, retrying batch",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def callback(
    debug: bool = typer.Option(False, "--debug", help="Show scheduler debug logs"),
) -> None:
    """Bounded-concurrency batch runner with exponential-backoff retries."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


class BatchRecorder:
    """Tracks the latest attempt of every command and logs each attempt."""

    def __init__(self, commands: list[ShellCommand]):
        self.commands = commands
        self.last_attempt: dict[int, TaskLogEntry] = {}
        self.results: dict[int, CommandResult] = {}

    def tasks(self) -> list[Callable[[], Awaitable[CommandResult]]]:
        return [self._wrap(index, command) for index, command in enumerate(self.commands)]

    def _wrap(self, index: int, command: ShellCommand) -> Callable[[], Awaitable[CommandResult]]:
        async def attempt() -> CommandResult:
            start = time.monotonic()
            try:
                result = await command()
            except Exception as e:
                self._record(TaskLogEntry(
                    timestamp=now_iso(),
                    job_id=get_job_id(),
                    task_index=index,
                    command=command.command,
                    attempt=command.attempts,
                    success=False,
                    exit_code=getattr(e, "exit_code", None),
                    error=str(e),
                    error_type=type(e).__name__,
                    duration_ms=int((time.monotonic() - start) * 1000),
                ))
                raise

            self.results[index] = result
            self._record(TaskLogEntry(
                timestamp=now_iso(),
                job_id=get_job_id(),
                task_index=index,
                command=command.command,
                attempt=result.attempt,
                success=True,
                exit_code=result.exit_code,
                duration_ms=result.duration_ms,
            ))
            return result

        return attempt

    def _record(self, entry: TaskLogEntry) -> None:
        self.last_attempt[entry.task_index] = entry
        batch_log.task(entry)

    @property
    def failed(self) -> int:
        return len(self.commands) - len(self.results)


def _read_command_file(path: Path) -> list[str]:
    """Read one command per line, skipping blanks and # comments."""
    try:
        lines = path.read_text().splitlines()
    except OSError as e:
        raise ConfigError(f"Cannot read command file {path}", {"error": str(e)})
    return [line.strip() for line in lines if line.strip() and not line.strip().startswith("#")]


def _on_retry(retry_number: int, error: BaseException, delay: float) -> None:
    console.print(f"[yellow]Retry {retry_number} in {delay:.2f}s:[/yellow] {escape(str(error))}")


async def _run_batch(
    processor: BatchProcessor[CommandResult],
    recorder: BatchRecorder,
    fail_fast: bool,
) -> str | None:
    """Run the batch; returns the aborting error message in fail-fast mode."""
    if fail_fast:
        try:
            await processor.submit_all(recorder.tasks())
        except Exception as e:
            return str(e)
        return None

    await processor.submit_settled(recorder.tasks())
    return None


def _show_results(recorder: BatchRecorder, max_attempts: int, show_output: bool) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Command", style="cyan")
    table.add_column("Status")
    table.add_column("Exit", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Duration", justify="right", style="dim")

    for index, command in enumerate(recorder.commands):
        entry = recorder.last_attempt.get(index)
        if index in recorder.results:
            status = "[green]ok[/green]"
        elif entry is not None and command.attempts == entry.attempt >= max_attempts:
            status = "[red]failed[/red]"
        else:
            status = "[dim]stopped[/dim]"

        table.add_row(
            str(index + 1),
            escape(command.command),
            status,
            "" if entry is None or entry.exit_code is None else str(entry.exit_code),
            str(command.attempts),
            "" if entry is None else f"{entry.duration_ms}ms",
        )

    console.print(table)

    if show_output:
        for index, result in sorted(recorder.results.items()):
            if result.stdout.strip():
                console.print(Panel(escape(result.stdout.rstrip()), title=escape(f"[{index + 1}] {result.command}")))


@app.command()
def run(
    commands: list[str] | None = typer.Argument(None, help="Shell commands to run"),
    file: Path | None = typer.Option(None, "--file", "-f", help="File with one command per line"),
    max_concurrent: int | None = typer.Option(None, "--max-concurrent", "-c", help="Commands running at once"),
    max_retries: int | None = typer.Option(None, "--max-retries", "-r", help="Retries after the first failure"),
    retry_delay_ms: float | None = typer.Option(None, "--retry-delay-ms", help="Base backoff delay in milliseconds"),
    timeout: float | None = typer.Option(None, "--timeout", "-t", help="Per-attempt timeout in seconds"),
    fail_fast: bool = typer.Option(False, "--fail-fast", help="Stop at the first command that fails for good"),
    show_output: bool = typer.Option(False, "--show-output", "-o", help="Print stdout of successful commands"),
) -> None:
    """Run commands with bounded concurrency and exponential-backoff retries."""
    try:
        config = load_config()
        processor_config = ProcessorConfig(
            max_concurrent=max_concurrent if max_concurrent is not None else config.processor.max_concurrent,
            max_retries=max_retries if max_retries is not None else config.processor.max_retries,
            retry_delay_base_ms=(
                retry_delay_ms if retry_delay_ms is not None else config.processor.retry_delay_base_ms
            ),
        )
        command_timeout = check_command_timeout(
            timeout if timeout is not None else config.command_timeout
        )
        lines = list(commands or [])
        if file is not None:
            lines.extend(_read_command_file(file))
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(2)

    if not lines:
        console.print("[bold red]Error:[/bold red] No commands given")
        raise typer.Exit(2)

    recorder = BatchRecorder([ShellCommand(line, timeout=command_timeout) for line in lines])
    processor: BatchProcessor[CommandResult] = BatchProcessor(processor_config, on_retry=_on_retry)

    job_id = uuid.uuid4().hex[:12]
    set_job_id(job_id)
    logger.debug(f"Job {job_id}: {len(lines)} command(s), {processor_config}")

    start = time.monotonic()
    try:
        abort_error = asyncio.run(_run_batch(processor, recorder, fail_fast))
    except KeyboardInterrupt:
        batch_log.note(f"Job {job_id} interrupted after {len(recorder.results)} of {len(lines)} command(s)")
        console.print("[bold red]Interrupted[/bold red]")
        raise typer.Exit(130)
    duration_ms = int((time.monotonic() - start) * 1000)

    _show_results(recorder, processor_config.max_retries + 1, show_output)

    errors = [
        f"Task {entry.task_index}: {entry.error}"
        for entry in recorder.last_attempt.values()
        if not entry.success and entry.task_index not in recorder.results
    ]
    batch_log.batch(BatchLogEntry(
        timestamp=now_iso(),
        job_id=job_id,
        mode="fail_fast" if fail_fast else "settled",
        total=len(lines),
        succeeded=len(recorder.results),
        failed=recorder.failed,
        duration_ms=duration_ms,
        config=processor_config.to_dict(),
        errors=errors,
    ))

    if abort_error is not None:
        console.print(f"[bold red]Stopped:[/bold red] {escape(abort_error)}")
    if recorder.failed:
        console.print(f"[red]{recorder.failed} of {len(lines)} command(s) did not succeed[/red]")
        raise typer.Exit(1)

    console.print(f"[green]All {len(lines)} command(s) succeeded in {duration_ms}ms[/green]")


@app.command(name="config")
def show_config() -> None:
    """Show the effective configuration."""
    try:
        config = load_config()
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(2)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in config.processor.to_dict().items():
        table.add_row(key, str(value))
    table.add_row("command_timeout", "none" if config.command_timeout is None else f"{config.command_timeout}s")
    table.add_row("config_file", str(CONFIG_FILE))
    table.add_row("log_file", str(get_log_config().batch_log_path))

    console.print(table)


def main() -> None:
    """Console script entry point."""
    app()
