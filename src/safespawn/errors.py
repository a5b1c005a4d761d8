"""Errors raised while running commands.

- SpawnUsageError: the call itself is invalid; raised before anything spawns
- NoSuchCommandError: the executable could not be found
- CommandResultError: the command ran and exited non-zero (raising entry points only)
"""

import errno
import os

from safespawn.types import CommandResult

NO_SUCH_FILE_MESSAGE = "No such file or directory"


class SpawnUsageError(ValueError):
    """Invalid combination of options for a run."""


class CommandResultError(Exception):
    """A command exited with a non-zero status.

    Attributes:
        result: The CommandResult of the failed command
    """

    def __init__(self, message: str, result: CommandResult) -> None:
        super().__init__(message)
        self.result = result

    @staticmethod
    def default_message(command: object, exit_status: int) -> str:
        """Format the standard failure message, e.g. `false exit code: 1`."""
        return f"{command} exit code: {exit_status}"


class NoSuchCommandError(FileNotFoundError):
    """The executable of a command could not be found.

    Only the offending command token is kept; parameter values never appear in
    the message.

    Attributes:
        command: The command token that could not be executed
    """

    def __init__(self, command: str) -> None:
        super().__init__(errno.ENOENT, NO_SUCH_FILE_MESSAGE, command)
        self.command = command

    def __str__(self) -> str:
        return f"{NO_SUCH_FILE_MESSAGE} - {self.command}"

    @staticmethod
    def detected(err: OSError) -> bool:
        """Check whether an OS error reports a missing file."""
        if err.errno == errno.ENOENT:
            return True
        return str(err.strerror or "").startswith(NO_SUCH_FILE_MESSAGE)

    @classmethod
    def from_os_error(cls, err: OSError, command_line: str) -> "NoSuchCommandError":
        """Build the error from an OS error raised while spawning.

        Args:
            err: The error raised by the spawn attempt
            command_line: The command line being spawned, used when the error
                carries no file name

        Returns:
            Error carrying the missing file name as reported, or else the first
            word of the command line so parameters never reach the message
        """
        if err.filename is not None:
            return cls(os.fsdecode(err.filename))
        tokens = command_line.split()
        return cls(tokens[0] if tokens else command_line)
