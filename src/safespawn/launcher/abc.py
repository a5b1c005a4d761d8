"""Launcher interface for spawning OS processes.

This module defines the abstract interface between the run facade and the
operating system, following the ABC-based dependency injection pattern so the
facade can be tested with an in-memory fake.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from safespawn.options import LaunchOptions
from safespawn.types import ProcessOutcome


class Launcher(ABC):
    """Abstract interface for process launching.

    Real implementations spawn processes with subprocess. Fake implementations
    record calls and return configured outcomes for unit tests.
    """

    @abstractmethod
    def launch(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> ProcessOutcome:
        """Run one command line to completion and capture its streams.

        Args:
            env: Variables merged on top of the inherited environment
            command_line: Fully built command line
            options: Stdin data, working directory, combined output, Popen extras
                and the on_spawn callback, which gets the pid while it runs

        Returns:
            Captured output, error, exit status and pid

        Raises:
            FileNotFoundError: If the executable (or working directory) is missing
            OSError: For any other spawn failure
        """
        ...

    @abstractmethod
    def launch_pipeline(
        self,
        env: Mapping[str, str | None],
        command_lines: Sequence[str],
        options: LaunchOptions,
    ) -> ProcessOutcome:
        """Run command lines connected stdout to stdin, to completion.

        Stdin data goes to the first stage. Output is the last stage's stdout,
        and the exit status is the last stage's, whatever earlier stages did.

        Args:
            env: Variables merged on top of the inherited environment, for all stages
            command_lines: One command line per stage, at least one
            options: Stdin data, working directory, combined output, Popen extras
                and the on_spawn callback, which gets the pid while it runs

        Returns:
            Captured output, error, exit status and pid of the last stage

        Raises:
            FileNotFoundError: If any stage's executable is missing
            OSError: For any other spawn failure
        """
        ...

    @abstractmethod
    def launch_detached(
        self,
        env: Mapping[str, str | None],
        command_line: str,
        options: LaunchOptions,
    ) -> int:
        """Start a command line without waiting for it.

        Args:
            env: Variables merged on top of the inherited environment
            command_line: Fully built command line
            options: Working directory and Popen extras (no stdin data)

        Returns:
            The pid of the started process

        Raises:
            FileNotFoundError: If the executable is missing
            OSError: For any other spawn failure
        """
        ...
