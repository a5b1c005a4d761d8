"""Output helpers for CLI commands with clear intent.

- user_output: messages for the person at the terminal (stderr)
- machine_output: data another program may consume (stdout)
- format_result_summary: rich panel describing a finished run
"""

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from safespawn.types import CommandResult


def user_output(message: str = "", nl: bool = True) -> None:
    """Write a message meant for the user to stderr."""
    click.echo(message, err=True, nl=nl)


def machine_output(message: str | bytes = "", nl: bool = True) -> None:
    """Write data to stdout."""
    click.echo(message, nl=nl)


def format_duration(seconds: float) -> str:
    """Format a duration as e.g. `0.42s` or `1m 5s`."""
    if seconds < 60:
        return f"{seconds:.2f}s"
    minutes, remainder = divmod(int(seconds), 60)
    return f"{minutes}m {remainder}s"


def format_result_summary(result: CommandResult, duration: float) -> Panel:
    """Format a summary box with status, exit status, pid, timing and command line.

    Args:
        result: Result of the finished run
        duration: Wall clock time of the run in seconds

    Returns:
        Rich Panel with formatted summary
    """
    lines: list[Text] = []

    if result.success:
        lines.append(Text("Status: success", style="green"))
    else:
        lines.append(Text(f"Status: failed (exit code {result.exit_status})", style="red"))

    if result.pid is not None:
        lines.append(Text(f"PID: {result.pid}"))
    lines.append(Text(f"Duration: {format_duration(duration)}"))

    if isinstance(result.command_line, tuple):
        lines.append(Text("Pipeline:"))
        for command_line in result.command_line:
            lines.append(Text(f"  {command_line}", style="dim"))
    else:
        lines.append(Text(f"Command: {result.command_line}", style="dim"))

    return Panel(Text("\n").join(lines), title="safespawn", expand=False)


def print_summary(panel: Panel) -> None:
    """Print a rich renderable to stderr."""
    Console(stderr=True).print(panel)
