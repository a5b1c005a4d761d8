"""Value types produced by running a command."""

from dataclasses import dataclass
from typing import NamedTuple


class ProcessOutcome(NamedTuple):
    """Raw outcome of one launch, as captured from the OS.

    Attributes:
        output: Bytes read from standard output
        error: Bytes read from standard error
        exit_status: Exit code (negative signal number if killed by a signal)
        pid: Process id, or None when not available
    """

    output: bytes
    error: bytes
    exit_status: int
    pid: int | None


@dataclass(frozen=True)
class CommandResult:
    """Result of running a command.

    `output` and `error` are always present; they are empty when the process
    wrote nothing. They hold `str` unless the run asked for binary output.

    Attributes:
        command_line: The executed command line, or one per stage for a pipeline
        output: Captured standard output
        error: Captured standard error (empty in combined output mode)
        exit_status: Exit status of the process (last stage for a pipeline)
        pid: Process id (last stage for a pipeline), if known
    """

    command_line: str | tuple[str, ...]
    output: str | bytes
    error: str | bytes
    exit_status: int
    pid: int | None = None

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    @property
    def failure(self) -> bool:
        return self.exit_status != 0

    def __repr__(self) -> str:
        return f"CommandResult(command_line={self.command_line!r}, exit_status={self.exit_status})"
